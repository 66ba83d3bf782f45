import os
import re

import requests
import streamlit as st

BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

# Report generation waits on the model; allow it longer than the server-side upstream timeout.
GENERATE_TIMEOUT = 180


class ApiClient:
    def upsert_patient(self, patient_id: str, name: str, age: int, gender: str):
        return requests.post(
            f"{BASE_URL}/api/patients",
            json={"patientId": patient_id, "name": name, "age": age, "gender": gender},
            timeout=30,
        )

    def generate_report(self, patient_id: str, test_type: str, parameters: dict[str, str]):
        return requests.post(
            f"{BASE_URL}/api/generate-report",
            json={"patientId": patient_id, "testType": test_type, "parameters": parameters},
            timeout=GENERATE_TIMEOUT,
        )

    def test_results(self, patient_id: str):
        return requests.get(f"{BASE_URL}/api/test-results/{patient_id}", timeout=30)

    def report_pdf(self, patient_id: str, result_id: int):
        return requests.get(f"{BASE_URL}/api/test-results/{patient_id}/{result_id}/pdf", timeout=60)


def error_message(res: requests.Response) -> str:
    try:
        return res.json().get("message") or res.text
    except ValueError:
        return res.text


# Catalog data never changes while the server runs, so cache it for the session.
@st.cache_data(ttl=3600, show_spinner=False)
def cached_test_types() -> tuple[bool, list]:
    res = requests.get(f"{BASE_URL}/api/test-types", timeout=30)
    return res.ok, res.json() if res.ok else []


@st.cache_data(ttl=3600, show_spinner=False)
def cached_parameters(test_type: str) -> tuple[bool, list]:
    res = requests.get(f"{BASE_URL}/api/test-types/{test_type}/parameters", timeout=30)
    return res.ok, res.json() if res.ok else []


@st.cache_data(ttl=60, show_spinner=False)
def cached_pdf(patient_id: str, result_id: int) -> tuple[bool, bytes, str]:
    res = ApiClient().report_pdf(patient_id, result_id)
    if not res.ok:
        return False, b"", ""
    match = re.search(r'filename="([^"]+)"', res.headers.get("content-disposition", ""))
    return True, res.content, match.group(1) if match else f"MediReport_{patient_id}_{result_id}.pdf"
