import json

from fastapi.testclient import TestClient

from backend.main import app
from backend.routers import reports as reports_router
from backend.routers.deps import get_storage
from backend.services import report_generator
from backend.services.errors import GenerationFailed, UpstreamUnavailable

PATIENT = {"patientId": "P-100", "name": "Jane Doe", "age": 42, "gender": "female"}


def _fake_model(monkeypatch, text: str):
    async def fake_call(prompt):
        return text

    monkeypatch.setattr(report_generator, "call_ollama", fake_call)


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["service"] == "medireport"


def test_root(client):
    assert client.get("/").json()["data"]["status"] == "ok"


def test_patient_get_or_create(client, storage):
    first = client.post("/api/patients", json=PATIENT)
    assert first.status_code == 200
    body = first.json()
    assert body["patientId"] == "P-100"
    assert body["id"] == 1
    assert "createdAt" in body

    # A second submission with different details returns the stored patient untouched.
    second = client.post("/api/patients", json={**PATIENT, "name": "Someone Else", "age": 50})
    assert second.status_code == 200
    assert second.json()["id"] == 1
    assert second.json()["name"] == "Jane Doe"
    assert storage.get_patient("P-100").age == 42


def test_patient_validation_lists_fields(client):
    res = client.post("/api/patients", json={"patientId": "P-1", "name": "", "age": 0, "gender": "unknown"})

    assert res.status_code == 400
    body = res.json()
    assert body["statusCode"] == 400
    assert body["error"] == "ValidationError"
    assert body["details"]["fields"] == ["age", "gender", "name"]
    assert body["message"] == "Invalid request payload: age, gender, name"


def test_generate_report_validation(client, storage):
    res = client.post("/api/generate-report", json={"testType": "cardiac", "parameters": {"Troponin": "0.1"}})

    assert res.status_code == 400
    fields = res.json()["details"]["fields"]
    assert "patientId" in fields
    assert "testType" in fields
    assert storage.get_test_results("P-100") == []


def test_generate_report_unparseable_output_uses_fallback(client, monkeypatch, lipid_panel):
    _fake_model(monkeypatch, "Sorry, I can only answer in prose today.")

    res = client.post("/api/generate-report", json=lipid_panel)

    assert res.status_code == 200
    body = res.json()
    assert body["patientId"] == "P-100"
    assert body["testType"] == "lipid"
    assert body["parameters"] == lipid_panel["parameters"]
    report = body["aiReport"]
    assert report["summary"] == "Sorry, I can only answer in prose today."
    assert report["keyFindings"][0]["parameter"] == "Total Cholesterol"
    assert report["keyFindings"][0]["status"] == "normal"
    assert report["keyFindings"][0]["referenceRange"] == "<200 mg/dL"
    assert report["rawResponse"] == "Sorry, I can only answer in prose today."
    assert "treatmentOptions" not in report
    # All findings normal, so the raw cholesterol value does not raise the level.
    assert body["riskLevel"] == "low"


def test_generate_report_with_structured_output(client, monkeypatch, lipid_panel):
    payload = {
        "summary": "Cholesterol is high.",
        "keyFindings": [
            {
                "parameter": "Total Cholesterol",
                "value": "250 mg/dL",
                "referenceRange": "<200 mg/dL",
                "status": "ABNORMAL",
                "interpretation": "Elevated",
            }
        ],
        "recommendations": ["Diet review"],
        "treatmentOptions": {"lifestyle": ["Exercise"], "medical": [], "medications": []},
        "overallAssessment": "Needs attention",
        "followUpRequired": True,
        "criticalFlags": ["Total cholesterol above 240 mg/dL"],
    }
    _fake_model(monkeypatch, "```json\n" + json.dumps(payload) + "\n```")

    res = client.post("/api/generate-report", json=lipid_panel)

    assert res.status_code == 200
    body = res.json()
    assert body["aiReport"]["keyFindings"][0]["status"] == "abnormal"
    assert body["aiReport"]["treatmentOptions"]["lifestyle"] == ["Exercise"]
    assert "rawResponse" not in body["aiReport"]
    assert body["riskLevel"] == "high"


def test_generate_report_logs_unmapped_parameters(client, monkeypatch, caplog):
    _fake_model(monkeypatch, "plain text")

    with caplog.at_level("WARNING", logger="backend.routers.reports"):
        res = client.post(
            "/api/generate-report",
            json={"patientId": "P-2", "testType": "thyroid", "parameters": {"TSH": "2", "Reverse T3": "15"}},
        )

    assert res.status_code == 200
    assert "Reverse T3" in caplog.text


def test_generate_report_upstream_failure_keeps_pending_record(client, storage, monkeypatch, lipid_panel):
    async def unavailable(prompt):
        raise UpstreamUnavailable("Failed to reach Ollama")

    monkeypatch.setattr(report_generator, "call_ollama", unavailable)

    res = client.post("/api/generate-report", json=lipid_panel)

    assert res.status_code == 500
    body = res.json()
    assert body["statusCode"] == 500
    assert body["message"] == reports_router.GENERATION_FAILED_MESSAGE
    assert "llama3.2:latest" in body["message"]

    pending = storage.get_test_results("P-100")
    assert len(pending) == 1
    assert pending[0].ai_report is None

    listed = client.get("/api/test-results/P-100").json()
    assert listed[0]["aiReport"] is None
    # No findings yet, so the raw cholesterol of 250 decides the level.
    assert listed[0]["riskLevel"] == "high"


def test_generate_report_wrapped_failure(client, monkeypatch, lipid_panel):
    async def failing(test_type, parameters):
        raise GenerationFailed("bad model output")

    monkeypatch.setattr(reports_router, "generate_ai_report", failing)

    res = client.post("/api/generate-report", json=lipid_panel)

    assert res.status_code == 500
    assert res.json()["error"] == "InternalServerError"


def test_list_test_results(client, monkeypatch, lipid_panel):
    _fake_model(monkeypatch, "prose")
    client.post("/api/generate-report", json=lipid_panel)
    client.post("/api/generate-report", json={**lipid_panel, "testType": "blood", "parameters": {"Glucose": 95}})
    client.post("/api/generate-report", json={**lipid_panel, "patientId": "P-200"})

    res = client.get("/api/test-results/P-100")

    assert res.status_code == 200
    results = res.json()
    assert [r["testType"] for r in results] == ["lipid", "blood"]
    assert results[1]["parameters"] == {"Glucose": 95}
    assert client.get("/api/test-results/P-404").json() == []


def test_download_pdf(client, monkeypatch, lipid_panel):
    _fake_model(monkeypatch, "prose")
    created = client.post("/api/generate-report", json=lipid_panel).json()

    res = client.get(f"/api/test-results/P-100/{created['id']}/pdf")

    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert res.content.startswith(b"%PDF")
    disposition = res.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="MediReport_P-100_Lipid_Profile_')
    assert disposition.endswith('.pdf"')


def test_download_pdf_not_found(client, monkeypatch, lipid_panel):
    _fake_model(monkeypatch, "prose")
    created = client.post("/api/generate-report", json=lipid_panel).json()

    missing = client.get("/api/test-results/P-100/999/pdf")
    other_patient = client.get(f"/api/test-results/P-200/{created['id']}/pdf")

    assert missing.status_code == 404
    assert missing.json()["message"] == "Test result not found"
    assert missing.json()["error"] == "NotFound"
    assert other_patient.status_code == 404


def test_catalog_endpoints(client):
    types = client.get("/api/test-types").json()
    assert types[0] == {"value": "blood", "label": "Blood Panel"}
    assert len(types) == 5

    params = client.get("/api/test-types/urine/parameters").json()
    assert params[2] == {
        "name": "Specific Gravity",
        "unit": "",
        "normalRange": "1.003-1.030",
        "valueKind": "number",
        "step": 0.001,
    }
    assert "step" not in params[4]

    assert client.get("/api/test-types/cardiac/parameters").json() == []


def test_unhandled_error_hides_internal_detail(storage, monkeypatch, caplog):
    def broken(patient_id):
        raise RuntimeError("sqlite3.OperationalError: no such table: test_results")

    monkeypatch.setattr(storage, "get_test_results", broken)
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        with TestClient(app, raise_server_exceptions=False) as raw_client:
            res = raw_client.get("/api/test-results/P-100")
    finally:
        app.dependency_overrides.clear()

    assert res.status_code == 500
    body = res.json()
    assert body == {"statusCode": 500, "message": "An unexpected error occurred", "error": "InternalServerError"}
    assert "no such table" not in res.text
    assert "no such table" in caplog.text
