import streamlit as st

st.set_page_config(
    page_title="XRD Phase Finder: plot powder XRD data and guess material phases with Gemini",
    layout="wide"
)
# Remove top padding
st.markdown("""
    <style>
    .block-container {
        padding-top: 1rem;
    }
    </style>
""", unsafe_allow_html=True)
from helpers import *
from more_funct.about_section import *
import phase_identification
import settings

import logging
import os
import psutil

settings.configure_logging()
logger = logging.getLogger("xrd.app")

st.markdown(
    """
    <h4>
        <span style='color:#8b0000;'>
            <strong>XRD Phase Finder</strong> – <em>diffraction pattern viewer with AI phase guesses</em>
        </span>
    </h4>
    """,
    unsafe_allow_html=True
)
st.markdown(
    """
    <hr style="border: none; height: 6px; background-color: #8b0000; border-radius: 8px; margin: 0px 0;">
    """,
    unsafe_allow_html=True
)

col1, col2 = st.columns([0.3, 0.7])
with col1:
    about_app_show = st.checkbox(f"📖 About the app")
    how_to_use = st.checkbox(f"🧭 How to use", value=False)
if about_app_show:
    about_app()
if how_to_use:
    show_how_to_use()

buttons_colors()

if "first_run_note" not in st.session_state:
    st.session_state["first_run_note"] = True
if "identified_phases" not in st.session_state:
    st.session_state["identified_phases"] = []
if "loading" not in st.session_state:
    st.session_state["loading"] = False

# ---------------------------------------------------------------- sidebar
st.sidebar.markdown("## 🔬 XRD Phase Finder")
st.sidebar.subheader("📁🧫 Upload Your Experimental Data")
user_pattern_file = st.sidebar.file_uploader(
    "Upload XRD pattern (2 columns: 2θ and Intensity, comma separated, no header)",
    type=["csv", "txt"],
    key="user_xrd"
)

st.sidebar.markdown("### Plot settings")
downsample_mode = st.sidebar.selectbox(
    "Downsampling",
    options=["Threshold", "Fixed stride", "None"],
    index=0,
    help="Only affects the plot. Phase identification always uses every parsed row."
)
if downsample_mode == "Threshold":
    downsample_threshold = st.sidebar.slider(
        "Maximum plotted points", min_value=100, max_value=10000,
        value=min(max(settings.DEFAULT_DOWNSAMPLE_THRESHOLD, 100), 10000), step=100
    )
elif downsample_mode == "Fixed stride":
    downsample_step = st.sidebar.slider("Keep every N-th point", min_value=1, max_value=50, value=5)

intensity_scale = st.sidebar.selectbox(
    "Intensity scale", options=["Linear", "Square Root", "Logarithmic"], index=0
)
col_thick, col_height = st.sidebar.columns(2)
line_thickness = col_thick.number_input("Line Thickness", min_value=0.1, max_value=15.0, value=1.0, step=0.3)
graph_height = col_height.number_input("Graph Height (pixels)", min_value=300, max_value=1500, value=400, step=50)

first_run_note()

# ---------------------------------------------------------------- data
xrd_points = []
if user_pattern_file is not None:
    xrd_points = read_uploaded_file(user_pattern_file)
    logger.info("Loaded %s: %d rows", user_pattern_file.name, len(xrd_points))
peak_data = peak_intensities(xrd_points)

st.subheader("📈 XRD Plot")
if xrd_points:
    xrd_df = points_to_frame(xrd_points)
    if downsample_mode == "Threshold":
        plot_df = downsample(xrd_df, downsample_threshold)
    elif downsample_mode == "Fixed stride":
        plot_df = downsample_stride(xrd_df, downsample_step)
    else:
        plot_df = xrd_df
    plot_df = plot_df.assign(intensity=convert_intensity_scale(plot_df["intensity"].to_numpy(), intensity_scale))
    y_label = scale_label(intensity_scale)

    base_name = file_stem(user_pattern_file.name)
    fig_pattern = build_pattern_figure(plot_df, line_width=line_thickness, height=graph_height, y_label=y_label)
    st.plotly_chart(fig_pattern, config=plotly_png_config(base_name))
    st.caption(f"Parsed rows: **{len(xrd_df)}**, plotted points: **{len(plot_df)}**")

    col_png, col_csv, col_delim = st.columns([1, 1, 1])
    delimiter_label = col_delim.selectbox("Delimiter for processed data:", list(DELIMITERS.keys()))
    col_png.download_button(
        label="🖼️ Download PNG",
        data=render_pattern_png(plot_df, title=user_pattern_file.name, y_label=y_label, line_width=line_thickness),
        file_name=f"{base_name}_pattern.png",
        mime="image/png",
        key="download_png"
    )
    col_csv.download_button(
        label="⬇️ Download processed data",
        data=frame_to_csv(plot_df, DELIMITERS[delimiter_label]),
        file_name=f"{base_name}_processed.xy",
        mime="text/plain",
        key="download_processed"
    )
elif user_pattern_file is not None:
    st.warning(f"No `angle,intensity` rows could be read from **{user_pattern_file.name}**.")
else:
    st.info("Upload your data file first to see the plot.")

# ---------------------------------------------------------------- identification
st.subheader("🧪 Material Phase Identification")
identify_clicked = st.button(
    "Identify Material Phases",
    disabled=st.session_state["loading"],
    key="identify_phases"
)
if identify_clicked and not st.session_state["loading"]:
    # draw the button disabled before the request goes out
    st.session_state["loading"] = True
    st.rerun()

if st.session_state["loading"]:
    try:
        with st.spinner("Identifying... please wait. 😊"):
            phases, notification = phase_identification.run_identification(peak_data)
        if phases is not None:
            st.session_state["identified_phases"] = phases
        st.session_state["pending_notification"] = notification
    finally:
        st.session_state["loading"] = False
    st.rerun()

if st.session_state.get("pending_notification") is not None:
    show_notification(st.session_state.pop("pending_notification"))

identified_phases = st.session_state["identified_phases"]
if identified_phases:
    st.markdown("**Identified Phases:**")
    with st.container(height=220, border=True):
        for phase in identified_phases:
            st.markdown(
                f"`Name:` {phase.name}  \n"
                f"`Crystal Structure:` {phase.crystal_structure}  \n"
                f"`Confidence:` {format_confidence(phase.confidence)}  \n"
                f"`2θ (placeholder):` {phase.two_theta:.1f}°"
            )
            st.divider()
    st.download_button(
        label="⬇️ Download identified phases (CSV)",
        data=phases_to_frame(identified_phases).to_csv(index=False),
        file_name="identified_phases.csv",
        mime="text/csv",
        key="download_phases"
    )


# ---------------------------------------------------------------- footer
def get_memory_usage():
    process = psutil.Process(os.getpid())
    mem_info = process.memory_info()
    return mem_info.rss / (1024 ** 2)  # in MB


st.markdown("<br><br>", unsafe_allow_html=True)
st.write(f"🔍 Current memory usage: **{get_memory_usage():.2f} MB**.")
