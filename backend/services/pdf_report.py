"""Downloadable PDF rendering of a test result and its AI report."""

import io
import re
from datetime import date, datetime
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from backend.schemas.report import KeyFinding, StructuredReport
from backend.schemas.test_result import TestResult
from backend.services.catalog import display_name

BRAND = "MediReport AI"
HEADER_COLOR = colors.Color(41 / 255, 128 / 255, 185 / 255)
MARGIN = 20 * mm
HEADER_HEIGHT = 40 * mm

RISK_COLORS = {
    "low": "#10B981",
    "medium": "#F59E0B",
    "high": "#EF4444",
}


class _NumberedCanvas(canvas.Canvas):
    """Canvas that stamps "Page i of n" footers once the page count is known."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int) -> None:
        width, _ = self._pagesize
        self.saveState()
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawRightString(width - MARGIN, 10 * mm, f"Page {self._pageNumber} of {total}")
        self.drawString(MARGIN, 10 * mm, f"Generated by {BRAND} - {date.today().strftime('%m/%d/%Y')}")
        self.restoreState()


def _draw_header(pdf: canvas.Canvas, _doc) -> None:
    width, height = pdf._pagesize
    pdf.saveState()
    pdf.setFillColor(HEADER_COLOR)
    pdf.rect(0, height - HEADER_HEIGHT, width, HEADER_HEIGHT, stroke=0, fill=1)
    pdf.setFillColor(colors.white)
    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawString(MARGIN, height - 25 * mm, BRAND)
    pdf.setFont("Helvetica", 12)
    pdf.drawString(MARGIN, height - 35 * mm, "Medical Test Analysis Report")
    pdf.restoreState()


def _matching_finding(report: StructuredReport | None, parameter: str) -> KeyFinding | None:
    if report is None:
        return None
    wanted = parameter.lower()
    for finding in report.key_findings:
        if wanted in finding.parameter.lower():
            return finding
    return None


def status_label(finding: KeyFinding | None) -> str:
    return (finding.status if finding else "normal").title()


def _format_date(value: datetime | date) -> str:
    return value.strftime("%m/%d/%Y")


def pdf_filename(test_result: TestResult, today: date) -> str:
    patient = re.sub(r"[^A-Za-z0-9._-]+", "_", test_result.patient_id)
    test_name = re.sub(r"\s+", "_", display_name(test_result.test_type))
    return f"MediReport_{patient}_{test_name}_{today.isoformat()}.pdf"


def build_pdf(test_result: TestResult) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        title=f"{BRAND} - {test_result.patient_id}",
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=HEADER_HEIGHT + 10 * mm,
        bottomMargin=MARGIN,
    )
    styles = getSampleStyleSheet()
    heading = styles["Heading2"]
    body = styles["Normal"]
    bullet = ParagraphStyle("Bullet", parent=body, leftIndent=10)
    indented = ParagraphStyle("Indented", parent=body, leftIndent=18)
    report = test_result.ai_report
    test_name = display_name(test_result.test_type)
    story = []

    story.append(Paragraph(f"Understanding your {escape(test_name)} Test Results", styles["Title"]))
    story.append(Spacer(1, 6))

    story.append(Paragraph("Patient Information", heading))
    info = [
        ["Patient ID:", test_result.patient_id],
        ["Test Type:", test_name],
        ["Test Date:", _format_date(test_result.created_at)],
        ["Report Generated:", _format_date(date.today())],
    ]
    info_table = Table(info, hAlign="LEFT", colWidths=[110, 300])
    info_table.setStyle(TableStyle([("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold")]))
    story.append(info_table)
    risk = test_result.risk_level
    story.append(Spacer(1, 6))
    story.append(Paragraph(
        f'<b>Risk Level:</b> <font color="{RISK_COLORS[risk]}">{risk.upper()}</font>',
        body,
    ))
    story.append(Spacer(1, 10))

    if report and report.summary:
        story.append(Paragraph("Executive Summary", heading))
        story.append(Paragraph(escape(report.summary), body))
        story.append(Spacer(1, 10))

    story.append(Paragraph("Test Parameters &amp; Results", heading))
    rows = [["Parameter", "Result", "Reference Range", "Status"]]
    for name, value in test_result.parameters.items():
        finding = _matching_finding(report, name)
        rows.append([
            Paragraph(escape(name), body),
            Paragraph(escape(str(value)), body),
            Paragraph(escape(finding.reference_range if finding else "N/A"), body),
            status_label(finding),
        ])
    results_table = Table(rows, hAlign="LEFT", colWidths=[130, 90, 150, 80], repeatRows=1)
    results_table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#eeeeee")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("LINEBELOW", (0, 0), (-1, 0), 0.75, colors.black),
        ("GRID", (0, 1), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    story.append(results_table)
    story.append(Spacer(1, 10))

    if report and report.key_findings:
        story.append(Paragraph("Key Findings", heading))
        for index, finding in enumerate(report.key_findings, start=1):
            story.append(Paragraph(f"<b>{index}. {escape(finding.parameter)}</b>", body))
            story.append(Paragraph(f"Value: {escape(finding.value)}", indented))
            story.append(Paragraph(f"Reference Range: {escape(finding.reference_range)}", indented))
            story.append(Paragraph(f"Status: {escape(finding.status)}", indented))
            story.append(Paragraph(f"Interpretation: {escape(finding.interpretation)}", indented))
            story.append(Spacer(1, 6))

    if report and report.recommendations:
        story.append(Paragraph("Clinical Recommendations", heading))
        for index, recommendation in enumerate(report.recommendations, start=1):
            story.append(Paragraph(f"{index}. {escape(recommendation)}", body))
        story.append(Spacer(1, 10))

    if report and report.treatment_options:
        story.append(Paragraph("Treatment Considerations", heading))
        sections = [
            ("Lifestyle Modifications:", report.treatment_options.lifestyle),
            ("Medical Interventions:", report.treatment_options.medical),
            ("Common Medications:", report.treatment_options.medications),
        ]
        for title, items in sections:
            if not items:
                continue
            story.append(Paragraph(f"<b>{title}</b>", body))
            for item in items:
                story.append(Paragraph(f"&bull; {escape(item)}", bullet))
            story.append(Spacer(1, 6))

    if report and report.overall_assessment:
        story.append(Paragraph("Overall Assessment", heading))
        story.append(Paragraph(escape(report.overall_assessment), body))
        story.append(Spacer(1, 10))

    if report and report.critical_flags:
        flag_style = ParagraphStyle("CriticalFlag", parent=body, textColor=colors.white)
        flag_rows = [[Paragraph("<b>CRITICAL FLAGS</b>", flag_style)]]
        flag_rows.extend([Paragraph(f"&bull; {escape(flag)}", flag_style)] for flag in report.critical_flags)
        flags_table = Table(flag_rows, hAlign="LEFT", colWidths=[doc.width])
        flags_table.setStyle(TableStyle([("BACKGROUND", (0, 0), (-1, -1), colors.red)]))
        story.append(flags_table)

    doc.build(story, onFirstPage=_draw_header, onLaterPages=_draw_header, canvasmaker=_NumberedCanvas)
    return buf.getvalue()
