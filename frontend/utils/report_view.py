"""Rendering of a test result and its AI report, shared by the dashboard and history pages."""

from datetime import datetime
from html import escape

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from utils.api_client import cached_pdf
from utils.theme import COLORS, kpi_tile, plotly_layout_defaults, risk_badge, section_title, status_badge


def _format_date(value: str | None) -> str:
    if not value:
        return "—"
    try:
        return datetime.fromisoformat(value).strftime("%B %d, %Y %H:%M")
    except ValueError:
        return value


def _bullets(items: list[str]) -> None:
    for item in items:
        st.markdown(f"- {item}")


def render_pdf_download(result: dict, key: str) -> None:
    ok, content, filename = cached_pdf(result["patientId"], result["id"])
    if not ok:
        st.caption("PDF export is unavailable for this result.")
        return
    st.download_button(
        "⬇️ Download PDF",
        data=content,
        file_name=filename,
        mime="application/pdf",
        key=key,
    )


def render_report(result: dict, test_label: str) -> None:
    report = result.get("aiReport") or {}
    findings = report.get("keyFindings") or []

    # ── Header card ───────────────────────────────────────────────────────
    st.markdown(
        f"""
        <div class="card" style="border-left:4px solid {COLORS['primary']};">
            <div style="display:flex;justify-content:space-between;align-items:center;margin-bottom:12px;">
                <span style="font-size:1.25rem;font-weight:700;color:{COLORS['text']};">📄 AI-Generated Medical Report</span>
                {risk_badge(result.get("riskLevel"))}
            </div>
            <div style="display:grid;grid-template-columns:repeat(2,1fr);gap:8px 32px;">
                <div><div class="info-label">Patient</div><div class="info-value">{escape(result.get("patientId", "—"))}</div></div>
                <div><div class="info-label">Test Date</div><div class="info-value">{_format_date(result.get("createdAt"))}</div></div>
                <div><div class="info-label">Test Type</div><div class="info-value">{escape(test_label)}</div></div>
                <div><div class="info-label">Follow-up</div><div class="info-value">{"Required" if report.get("followUpRequired") else "Not required"}</div></div>
            </div>
        </div>
        """,
        unsafe_allow_html=True,
    )
    render_pdf_download(result, key=f"pdf_{result['id']}")

    if not report:
        st.info("The report for this result is still pending.")
        return

    if report.get("criticalFlags"):
        flags_html = "".join(f"<li>{escape(flag)}</li>" for flag in report["criticalFlags"])
        st.markdown(
            f'<div class="critical-card"><b>⚠ Critical Flags</b><ul style="margin:6px 0 0 0;">{flags_html}</ul></div>',
            unsafe_allow_html=True,
        )

    # ── Summary ───────────────────────────────────────────────────────────
    section_title("Executive Summary")
    st.write(report.get("summary") or "—")

    # ── Findings ──────────────────────────────────────────────────────────
    counts = {status: sum(1 for f in findings if f.get("status") == status) for status in ("normal", "borderline", "abnormal")}
    c1, c2, c3 = st.columns(3)
    c1.markdown(kpi_tile("Normal", counts["normal"], COLORS["success"]), unsafe_allow_html=True)
    c2.markdown(kpi_tile("Borderline", counts["borderline"], COLORS["warning"]), unsafe_allow_html=True)
    c3.markdown(kpi_tile("Abnormal", counts["abnormal"], COLORS["danger"]), unsafe_allow_html=True)

    if findings:
        section_title("Test Parameters & Results")
        rows_html = ""
        for f in findings:
            rows_html += f"""
            <tr>
                <td style="padding:8px 12px;font-weight:600;">{escape(str(f.get("parameter", "")))}</td>
                <td style="padding:8px 12px;">{escape(str(f.get("value", "")))}</td>
                <td style="padding:8px 12px;color:{COLORS['text_muted']};font-size:0.85rem;">{escape(str(f.get("referenceRange", "")))}</td>
                <td style="padding:8px 12px;">{status_badge(f.get("status"))}</td>
            </tr>
            """
        st.markdown(
            f"""
            <div style="overflow-x:auto;">
            <table style="width:100%;border-collapse:collapse;font-size:0.88rem;">
                <thead>
                    <tr style="border-bottom:2px solid {COLORS['border']};text-align:left;">
                        <th style="padding:8px 12px;">Parameter</th>
                        <th style="padding:8px 12px;">Result</th>
                        <th style="padding:8px 12px;">Reference Range</th>
                        <th style="padding:8px 12px;">Status</th>
                    </tr>
                </thead>
                <tbody>{rows_html}</tbody>
            </table>
            </div>
            """,
            unsafe_allow_html=True,
        )

        fig = go.Figure(go.Pie(
            labels=["Normal", "Borderline", "Abnormal"],
            values=[counts["normal"], counts["borderline"], counts["abnormal"]],
            hole=0.5,
            marker=dict(colors=[COLORS["success"], COLORS["warning"], COLORS["danger"]]),
            textinfo="label+value",
        ))
        fig.update_layout(**plotly_layout_defaults("Finding Distribution", height=280), showlegend=False)
        st.plotly_chart(fig, use_container_width=True)

        section_title("Key Findings")
        for index, f in enumerate(findings, start=1):
            with st.expander(f"{index}. {f.get('parameter', '')} — {str(f.get('status', '')).title()}"):
                st.markdown(f"**Value:** {f.get('value', '')}")
                st.markdown(f"**Reference Range:** {f.get('referenceRange', '')}")
                st.markdown(f"**Interpretation:** {f.get('interpretation', '')}")

        st.download_button(
            "⬇️ Download Findings CSV",
            data=pd.DataFrame(findings).to_csv(index=False),
            file_name=f"findings_{result['id']}.csv",
            mime="text/csv",
            key=f"csv_{result['id']}",
        )

    if report.get("recommendations"):
        section_title("Clinical Recommendations")
        for index, item in enumerate(report["recommendations"], start=1):
            st.markdown(f"{index}. {item}")

    treatment = report.get("treatmentOptions") or {}
    if any(treatment.get(key) for key in ("lifestyle", "medical", "medications")):
        section_title("Treatment Considerations")
        cols = st.columns(3)
        for col, (key, title) in zip(cols, [("lifestyle", "Lifestyle"), ("medical", "Medical"), ("medications", "Medications")]):
            with col:
                st.markdown(f"**{title}**")
                _bullets(treatment.get(key) or ["—"])

    section_title("Overall Assessment")
    st.write(report.get("overallAssessment") or "—")

    if report.get("rawResponse"):
        with st.expander("Raw model response"):
            st.caption("The model output could not be read as a structured report; a standard summary was produced instead.")
            st.text(report["rawResponse"])
