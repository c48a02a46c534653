
import numpy as np
import pandas as pd
import pytest

from helpers import (
    XRDDataPoint,
    convert_intensity_scale,
    downsample,
    downsample_stride,
    file_stem,
    format_confidence,
    frame_to_csv,
    build_pattern_figure,
    parse_xrd_text,
    peak_intensities,
    phases_to_frame,
    plotly_png_config,
    points_to_frame,
    read_uploaded_file,
    render_pattern_png,
)
from phase_identification import IdentifiedPhase


class FakeUpload:
    def __init__(self, data: bytes, name="pattern.csv"):
        self._data = data
        self.name = name
        self.position = 0

    def seek(self, position):
        self.position = position

    def read(self):
        return self._data[self.position:]


def test_parse_drops_non_numeric_rows():
    points = parse_xrd_text("10,5\n20,abc\n30,15")
    assert points == [XRDDataPoint(10.0, 5.0), XRDDataPoint(30.0, 15.0)]


def test_parse_empty_input_gives_no_rows():
    assert parse_xrd_text("") == []


def test_parse_skips_lines_without_second_column():
    assert parse_xrd_text("angle\n12.5\n\n") == []


def test_parse_header_row_is_dropped_as_non_numeric():
    points = parse_xrd_text("angle,intensity\n10.5,100")
    assert points == [XRDDataPoint(10.5, 100.0)]


def test_parse_blank_field_counts_as_zero():
    assert parse_xrd_text("10,") == [XRDDataPoint(10.0, 0.0)]


def test_parse_tolerates_whitespace_crlf_and_extra_columns():
    points = parse_xrd_text(" 10 , 5 \r\n20,7,99\r\n")
    assert points == [XRDDataPoint(10.0, 5.0), XRDDataPoint(20.0, 7.0)]


def test_parse_accepts_plain_numeric_literals_only():
    points = parse_xrd_text("10,1_000\ninf,5\nInfinity,5\n1e999,5\n0x10,3\n0b11,0o7\n-0x10,3\n.5,2e1")
    assert points == [
        XRDDataPoint(16.0, 3.0),
        XRDDataPoint(3.0, 7.0),
        XRDDataPoint(0.5, 20.0),
    ]


def test_read_uploaded_file_decodes_bytes():
    upload = FakeUpload(b"10,5\n20,6\n")
    upload.seek(3)
    points = read_uploaded_file(upload)
    assert len(points) == 2


def test_read_uploaded_file_falls_back_to_latin1():
    upload = FakeUpload("10,5\n20,6 \xb0\n".encode("latin-1"))
    points = read_uploaded_file(upload)
    assert points == [XRDDataPoint(10.0, 5.0)]


def test_points_to_frame_and_peak_intensities():
    points = parse_xrd_text("10,5\n30,15")
    frame = points_to_frame(points)
    assert list(frame.columns) == ["angle", "intensity"]
    assert frame["angle"].tolist() == [10.0, 30.0]
    assert peak_intensities(points) == [5.0, 15.0]


def test_points_to_frame_empty_keeps_columns():
    frame = points_to_frame([])
    assert frame.empty
    assert list(frame.columns) == ["angle", "intensity"]


def test_downsample_threshold_stride():
    data = list(range(1000))
    result = downsample(data, 300)
    assert len(result) == 250
    assert result[:3] == [0, 4, 8]
    assert all(value % 4 == 0 for value in result)


def test_downsample_below_threshold_returns_same_object():
    data = list(range(10))
    assert downsample(data, 10) is data


def test_downsample_dataframe_keeps_positional_rows():
    frame = pd.DataFrame({"angle": np.arange(1000.0), "intensity": np.ones(1000)})
    result = downsample(frame, 300)
    assert len(result) == 250
    assert result["angle"].iloc[1] == 4.0


def test_downsample_rejects_non_positive_threshold():
    with pytest.raises(ValueError):
        downsample([1, 2, 3], 0)


def test_downsample_stride_keeps_every_nth():
    assert downsample_stride(list(range(10)), 3) == [0, 3, 6, 9]
    assert downsample_stride(list(range(4)), 1) == [0, 1, 2, 3]
    with pytest.raises(ValueError):
        downsample_stride([1], 0)


def test_convert_intensity_scale():
    values = np.array([-4.0, 0.0, 100.0])
    assert convert_intensity_scale(values, "Linear").tolist() == [-4.0, 0.0, 100.0]
    assert convert_intensity_scale(values, "Square Root").tolist() == [0.0, 0.0, 10.0]
    assert convert_intensity_scale(values, "Logarithmic").tolist() == [0.0, 0.0, 2.0]
    assert convert_intensity_scale([], "Logarithmic") == []


def test_build_pattern_figure():
    frame = points_to_frame(parse_xrd_text("10,5\n20,6\n30,7"))
    fig = build_pattern_figure(frame, line_width=2.0, height=500)
    assert len(fig.data) == 1
    assert list(fig.data[0].x) == [10.0, 20.0, 30.0]
    assert fig.data[0].line.width == 2.0
    assert fig.layout.height == 500


def test_plotly_png_config_names_snapshot():
    config = plotly_png_config("sample")
    assert config["toImageButtonOptions"]["format"] == "png"
    assert config["toImageButtonOptions"]["filename"] == "sample_pattern"


def test_render_pattern_png_produces_png_bytes():
    frame = points_to_frame(parse_xrd_text("10,5\n20,6\n30,7"))
    data = render_pattern_png(frame, title="sample", dpi=50)
    assert data.startswith(b"\x89PNG\r\n\x1a\n")


def test_frame_to_csv_uses_delimiter():
    frame = points_to_frame(parse_xrd_text("10,5"))
    assert frame_to_csv(frame, ";").splitlines() == ["angle;intensity", "10.0;5.0"]


def test_small_formatting_helpers():
    assert file_stem("scan.01.csv") == "scan.01"
    assert format_confidence(0.8567) == "85.67%"


def test_phases_to_frame():
    phases = [IdentifiedPhase("Silicon Dioxide", "Cubic", 0.9, 20.0)]
    frame = phases_to_frame(phases)
    assert frame.loc[0, "Confidence"] == "90.00%"
    assert frame.loc[0, "2θ (placeholder)"] == 20.0


def test_render_pattern_png_is_cached_between_reruns(monkeypatch):
    import helpers

    render_pattern_png.clear()
    calls = []
    real_subplots = helpers.plt.subplots

    def counting_subplots(*args, **kwargs):
        calls.append(args)
        return real_subplots(*args, **kwargs)

    monkeypatch.setattr(helpers.plt, "subplots", counting_subplots)
    frame = points_to_frame(parse_xrd_text("11,5\n21,6\n31,7"))

    first = render_pattern_png(frame, title="cached", dpi=40)
    second = render_pattern_png(frame, title="cached", dpi=40)
    assert first == second
    assert len(calls) == 1

    render_pattern_png(frame, title="cached", dpi=40, line_width=2.0)
    assert len(calls) == 2
