from datetime import date, datetime, timezone

from backend.schemas import test_result as result_schemas
from backend.schemas.report import KeyFinding, StructuredReport, TreatmentOptions
from backend.services.pdf_report import build_pdf, pdf_filename, status_label


def _result(ai_report=None, patient_id="P-100", test_type="lipid"):
    return result_schemas.TestResult(
        id=7,
        patient_id=patient_id,
        test_type=test_type,
        parameters={"Total Cholesterol": "250", "HDL Cholesterol": 45},
        ai_report=ai_report,
        created_at=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
    )


def _report():
    return StructuredReport(
        summary="Total cholesterol <b>elevated</b> & HDL acceptable.",
        key_findings=[
            KeyFinding(
                parameter="Total Cholesterol",
                value="250 mg/dL",
                reference_range="<200 mg/dL",
                status="abnormal",
                interpretation="Above target",
            )
        ],
        recommendations=["Repeat in 3 months"],
        treatment_options=TreatmentOptions(lifestyle=["Exercise"], medications=["Statins"]),
        overall_assessment="Elevated cardiovascular risk",
        follow_up_required=True,
        critical_flags=["Cholesterol > 240"],
    )


def test_build_pdf_with_report():
    content = build_pdf(_result(_report()))
    assert content.startswith(b"%PDF")
    assert len(content) > 1000


def test_build_pdf_for_pending_result():
    assert build_pdf(_result()).startswith(b"%PDF")


def test_pdf_filename():
    assert pdf_filename(_result(), date(2026, 3, 2)) == "MediReport_P-100_Lipid_Profile_2026-03-02.pdf"


def test_pdf_filename_sanitizes_patient_id():
    name = pdf_filename(_result(patient_id='a/b "c"', test_type="thyroid"), date(2026, 1, 5))
    assert name == "MediReport_a_b_c__Thyroid_Function_2026-01-05.pdf"


def test_status_label_matches_for_found_and_missing_findings():
    finding = _report().key_findings[0]
    assert status_label(finding) == "Abnormal"
    assert status_label(None) == "Normal"
