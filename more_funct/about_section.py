import streamlit as st


def about_app():
    with st.expander("About the app.", icon="📖", expanded=True):
        st.info(
            "**Plot two-column powder XRD data and ask a language model which material phases it might contain.**\n\n"
            "Upload a file with `angle,intensity` rows (2θ in degrees, intensity in arbitrary units). The pattern is "
            "drawn in an interactive plot, optionally downsampled so large scans stay responsive. The identification "
            "step sends the intensity values together with a short list of candidate phases to Gemini and shows the "
            "phases it considers likely, each with a confidence score."
        )
        st.warning(
            "🪧 The candidate list is a **fixed two-entry stub** (Silicon Dioxide, Aluminum Oxide), not a materials "
            "database, and there is **no peak matching**. The 2θ shown next to each identified phase is a "
            "**placeholder** and does not come from your pattern. Treat the result as a demonstration only."
        )
        if st.button("Clear Cache"):
            st.cache_data.clear()
            st.cache_resource.clear()


def show_how_to_use():
    with st.expander("How to use", icon="🧭", expanded=True):
        st.markdown("""
        #### 📁 Input file
        * Plain text or CSV, one `angle,intensity` pair per line, comma separated.
        * No header row. Lines that are not two numbers are skipped.

        #### 📈 Plot
        * Choose **Threshold** downsampling to cap the number of plotted points, **Fixed stride** to keep every N-th
          point, or **None** to plot everything.
        * Intensity can be shown on a linear, square-root or logarithmic scale.
        * Use the camera icon in the plot toolbar or the **Download PNG** button to save the figure.

        #### 🧪 Phase identification
        * Requires `GEMINI_API_KEY` in the environment or in a `.env` file.
        * The full intensity array (not the downsampled one) is sent to the model.
        """)


def first_run_note():
    if st.session_state["first_run_note"] == True:
        st.info("""
        Use the **sidebar** to **upload your two-column XRD data** (`.csv` or `.txt`). The pattern appears in the
        interactive plot, and **Identify Material Phases** asks the model for likely phases.
        """)
        st.session_state["first_run_note"] = False


def buttons_colors():
    st.markdown(
        """
        <style>
        div.stButton > button {
            background-color: #8b0000;
            color: white;
            font-size: 16px;
            font-weight: bold;
            padding: 0.5em 1em;
            border: none;
            border-radius: 5px;
            width: 100%;
        }
        div.stButton > button:disabled {
            background-color: #c9a0a0;
        }
        </style>
        """,
        unsafe_allow_html=True
    )
