import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent.parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import streamlit as st

from utils.api_client import ApiClient, cached_test_types, error_message
from utils.report_view import render_report
from utils.theme import COLORS, apply_theme

st.set_page_config(page_title="Report History", page_icon="🗂️", layout="wide")
apply_theme()

client = ApiClient()

st.markdown(
    f"""
    <div style="margin-bottom:4px;">
        <span style="font-size:1.6rem;font-weight:800;color:{COLORS['text']};">🗂️ Report History</span>
    </div>
    <p style="color:{COLORS['text_muted']};margin-top:0;">
        Browse earlier test results for a patient.
    </p>
    """,
    unsafe_allow_html=True,
)

_, test_types = cached_test_types()
labels = {t["value"]: t["label"] for t in test_types}

patient_id = st.text_input("Patient ID", value=st.session_state.get("patient_id", ""))
if not patient_id.strip():
    st.info("Enter a patient ID to see their results.")
    st.stop()

res = client.test_results(patient_id.strip())
if not res.ok:
    st.error(f"Failed to load test results: {error_message(res)}")
    st.stop()

results = sorted(res.json(), key=lambda r: r["id"], reverse=True)
if not results:
    st.info("No test results for this patient yet.")
    st.stop()

options = {
    f"#{r['id']} — {labels.get(r['testType'], r['testType'])} — {r['createdAt'][:10]}": r
    for r in results
}
choice = st.selectbox("Select result", options=list(options.keys()))
selected = options[choice]

render_report(selected, labels.get(selected["testType"], selected["testType"]))
