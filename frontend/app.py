import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import streamlit as st
from utils.api_client import ApiClient, cached_parameters, cached_test_types, error_message
from utils.report_view import render_report
from utils.theme import COLORS, apply_theme

st.set_page_config(
    page_title="MediReport AI",
    page_icon="🩺",
    layout="wide",
    initial_sidebar_state="expanded",
)
apply_theme()

# ── Session defaults ──────────────────────────────────────────────────────
if "last_result" not in st.session_state:
    st.session_state.last_result = None
if "patient_id" not in st.session_state:
    st.session_state.patient_id = ""

client = ApiClient()

st.markdown(
    f"""
    <div style="margin-bottom:4px;">
        <span style="font-size:1.8rem;font-weight:800;color:{COLORS['text']};">🩺 MediReport AI</span>
    </div>
    <p style="color:{COLORS['text_muted']};margin-top:0;">
        Enter patient details and lab values to generate an AI-assisted medical report.
    </p>
    """,
    unsafe_allow_html=True,
)

t_ok, test_types = cached_test_types()
if not t_ok or not test_types:
    st.error("Could not load test types. Is the API running?")
    st.stop()
labels = {t["value"]: t["label"] for t in test_types}

form_col, report_col = st.columns([1, 2], gap="large")

with form_col:
    st.markdown("#### Patient Information")
    patient_id = st.text_input("Patient ID", value=st.session_state.patient_id, placeholder="P-0001")
    name = st.text_input("Full name", placeholder="Jane Doe")
    c1, c2 = st.columns(2)
    age = c1.number_input("Age", min_value=1, max_value=150, value=40, step=1)
    gender = c2.selectbox("Gender", options=["male", "female", "other"], format_func=str.title)

    st.markdown("#### Test Data")
    test_type = st.selectbox("Test type", options=list(labels.keys()), format_func=lambda v: labels[v])
    p_ok, parameter_defs = cached_parameters(test_type)
    if not p_ok:
        st.error("Could not load parameters for this test type.")
        st.stop()

    # Keys include the test type so switching panels starts from empty inputs.
    values: dict[str, str] = {}
    for param in parameter_defs:
        unit = f" ({param['unit']})" if param.get("unit") else ""
        values[param["name"]] = st.text_input(
            f"{param['name']}{unit}",
            key=f"{test_type}::{param['name']}",
            placeholder=f"Normal: {param['normalRange']}",
        )

    submit = st.button("Generate AI Report", use_container_width=True, type="primary")

if submit:
    parameters = {k: v.strip() for k, v in values.items() if v and v.strip()}
    if not patient_id.strip() or not name.strip():
        form_col.error("Patient ID and name are required.")
    elif not parameters:
        form_col.error("Enter at least one test value.")
    else:
        with report_col:
            with st.spinner("AI is analysing the results with Ollama LLaMA 3.2..."):
                p_res = client.upsert_patient(patient_id.strip(), name.strip(), int(age), gender)
                if not p_res.ok:
                    st.error(f"Could not save patient: {error_message(p_res)}")
                else:
                    res = client.generate_report(patient_id.strip(), test_type, parameters)
                    if res.ok:
                        st.session_state.last_result = res.json()
                        st.session_state.patient_id = patient_id.strip()
                    else:
                        st.error(error_message(res))

with report_col:
    result = st.session_state.last_result
    if result:
        render_report(result, labels.get(result["testType"], result["testType"]))
    else:
        st.markdown(
            f"""
            <div class="card" style="text-align:center;">
                <div style="font-size:3rem;">📄</div>
                <div style="font-weight:700;font-size:1.1rem;color:{COLORS['text']};">No Report Generated</div>
                <div style="color:{COLORS['text_muted']};">
                    Fill out the test data form and click "Generate AI Report" to begin analysis.
                </div>
            </div>
            """,
            unsafe_allow_html=True,
        )
