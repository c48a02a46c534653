import io
import logging
import math
import re
from dataclasses import dataclass
from typing import List

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import plotly.graph_objs as go
import streamlit as st

logger = logging.getLogger(__name__)

LINE_COLOR = "#1f77b4"
X_AXIS_LABEL = "2θ (°)"
Y_AXIS_LABEL = "Intensity (a.u.)"

_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$", re.ASCII)
_RADIX_LITERAL = re.compile(r"^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$", re.ASCII)

DELIMITERS = {
    "Comma (`,`)": ",",
    "Space (` `)": " ",
    "Tab (`\\t`)": "\t",
    "Semicolon (`;`)": ";"
}


@dataclass(frozen=True)
class XRDDataPoint:
    angle: float
    intensity: float


def _to_number(field):
    # blank fields count as zero; digit separators and infinities are NaN
    field = field.strip()
    if not field:
        return 0.0
    if _RADIX_LITERAL.match(field):
        return float(int(field, 0))
    if not _DECIMAL_LITERAL.match(field):
        return math.nan
    value = float(field)
    return value if math.isfinite(value) else math.nan


def parse_xrd_text(content: str) -> List[XRDDataPoint]:
    """
    Parse newline separated `angle,intensity` rows.

    Rows where either value is not a number are dropped silently; columns
    after the second one are ignored.
    """
    lines = content.split("\n")
    points = []
    for line in lines:
        fields = line.split(",")
        angle = _to_number(fields[0])
        intensity = _to_number(fields[1]) if len(fields) > 1 else math.nan
        if math.isnan(angle) or math.isnan(intensity):
            continue
        points.append(XRDDataPoint(angle=angle, intensity=intensity))

    logger.debug("Parsed %d rows, dropped %d", len(points), len(lines) - len(points))
    return points


def read_uploaded_file(uploaded_file) -> List[XRDDataPoint]:
    uploaded_file.seek(0)
    raw = uploaded_file.read()
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError:
            raw = raw.decode('latin-1')
    return parse_xrd_text(raw)


def points_to_frame(points) -> pd.DataFrame:
    return pd.DataFrame(
        [(p.angle, p.intensity) for p in points],
        columns=["angle", "intensity"],
    )


def peak_intensities(points) -> List[float]:
    return [p.intensity for p in points]


def _take_every(data, rate):
    if isinstance(data, (pd.DataFrame, pd.Series)):
        return data.iloc[::rate]
    return [item for index, item in enumerate(data) if index % rate == 0]


def downsample(data, threshold: int):
    """Keep every ceil(len/threshold)-th row once the data exceeds threshold."""
    if threshold <= 0:
        raise ValueError("threshold must be > 0")
    if len(data) <= threshold:
        return data

    sample_rate = math.ceil(len(data) / threshold)
    return _take_every(data, sample_rate)


def downsample_stride(data, stride: int):
    if stride < 1:
        raise ValueError("stride must be >= 1")
    return _take_every(data, stride)


def convert_intensity_scale(intensity_values, scale_type):
    if intensity_values is None or len(intensity_values) == 0:
        return intensity_values

    converted = np.array(intensity_values, dtype=float)

    if scale_type == "Square Root":
        converted[converted < 0] = 0
        converted = np.sqrt(converted)
    elif scale_type == "Logarithmic":
        converted[converted <= 1] = 1
        converted = np.log10(converted)
    return converted


def scale_label(scale_type):
    if scale_type == "Square Root":
        return "√Intensity (a.u.)"
    if scale_type == "Logarithmic":
        return "log₁₀ Intensity (a.u.)"
    return Y_AXIS_LABEL


def build_pattern_figure(frame, line_width=1.0, height=400, y_label=Y_AXIS_LABEL, name="Intensity"):
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=frame["angle"],
        y=frame["intensity"],
        mode="lines",
        name=name,
        line=dict(dash='solid', width=line_width, color=LINE_COLOR),
        hovertemplate=(
            f"<span style='color:{LINE_COLOR};'><b>{name}</b><br>"
            "2θ = %{x:.2f}°<br>I = %{y:.2f}</span><extra></extra>"
        )
    ))
    fig.update_layout(
        height=height,
        margin=dict(t=40, b=60, l=60, r=30),
        hovermode="closest",
        showlegend=True,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="center", x=0.5),
        xaxis=dict(title=dict(text=X_AXIS_LABEL), showgrid=True, griddash="dash"),
        yaxis=dict(title=dict(text=y_label), showgrid=True, griddash="dash"),
    )
    return fig


def plotly_png_config(file_stem):
    # modebar camera button saves the chart as it is rendered in the browser
    return {
        "displaylogo": False,
        "toImageButtonOptions": {"format": "png", "filename": f"{file_stem}_pattern", "scale": 2},
    }


@st.cache_data(show_spinner=False, max_entries=16)
def render_pattern_png(frame, title=None, y_label=Y_AXIS_LABEL, line_width=1.0, dpi=300) -> bytes:
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(frame["angle"], frame["intensity"], lw=line_width, color=LINE_COLOR, label="Intensity")
    ax.set_xlabel(X_AXIS_LABEL)
    ax.set_ylabel(y_label)
    ax.grid(True, linestyle="--", alpha=0.5)
    ax.legend()
    if title:
        ax.set_title(title)
    fig.tight_layout()

    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=dpi)
    plt.close(fig)
    return buffer.getvalue()


def frame_to_csv(frame, delimiter=",") -> str:
    buffer = io.StringIO()
    frame.to_csv(buffer, sep=delimiter, index=False)
    return buffer.getvalue()


def file_stem(file_name):
    return file_name.rsplit(".", 1)[0]


def format_confidence(confidence):
    return f"{confidence * 100:.2f}%"


def phases_to_frame(phases) -> pd.DataFrame:
    return pd.DataFrame({
        "Name": [p.name for p in phases],
        "Crystal Structure": [p.crystal_structure for p in phases],
        "Confidence": [format_confidence(p.confidence) for p in phases],
        "2θ (placeholder)": [p.two_theta for p in phases],
    })


def show_notification(notification):
    if notification.is_destructive:
        st.error(f"**{notification.title}**: {notification.description}")
        st.toast(f"**{notification.title}**: {notification.description}", icon="🚨")
    else:
        st.toast(f"**{notification.title}**: {notification.description}", icon="ℹ️")
