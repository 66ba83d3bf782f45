"""
Shared theme, CSS injection, color palette, and UI helper functions
for the MediReport Streamlit frontend.
"""

from __future__ import annotations

import streamlit as st

# ---------------------------------------------------------------------------
# Color palette
# ---------------------------------------------------------------------------
COLORS: dict[str, str] = {
    "primary": "#2980B9",       # report header blue
    "primary_light": "#D6EAF8",
    "danger": "#EF4444",        # red-500
    "danger_light": "#FEE2E2",  # red-100
    "warning": "#F59E0B",       # amber-500
    "warning_light": "#FEF3C7", # amber-100
    "success": "#10B981",       # emerald-500
    "success_light": "#D1FAE5", # emerald-100
    "text": "#1E293B",          # slate-800
    "text_secondary": "#475569", # slate-600
    "text_muted": "#64748B",    # slate-500
    "bg_card": "#FFFFFF",
    "bg_page": "#F8FAFC",       # slate-50
    "border": "#E2E8F0",        # slate-200
}

STATUS_CLASSES = {
    "normal": "status-normal",
    "borderline": "status-borderline",
    "abnormal": "status-abnormal",
}

RISK_COLORS = {
    "low": COLORS["success"],
    "medium": COLORS["warning"],
    "high": COLORS["danger"],
}


def plotly_layout_defaults(title: str = "", height: int = 400) -> dict:
    """Return a dict of common Plotly layout kwargs for consistent styling."""
    c = COLORS
    return dict(
        title=dict(text=title, font=dict(size=16, color=c["text"])),
        template="plotly_white",
        height=height,
        margin=dict(l=20, r=20, t=50, b=20),
        font=dict(family="Inter, system-ui, sans-serif", size=13, color=c["text"]),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
    )


# ---------------------------------------------------------------------------
# CSS injection
# ---------------------------------------------------------------------------
_CSS_TEMPLATE = """
<style>
[data-testid="stAppViewContainer"] {
    background-color: %(bg_page)s;
}

/* ---------- Card container ---------- */
.card {
    background: %(bg_card)s;
    border: 1px solid %(border)s;
    border-radius: 12px;
    padding: 24px;
    margin-bottom: 16px;
    box-shadow: 0 1px 3px rgba(0,0,0,0.06);
}

/* ---------- Status badges ---------- */
.status-badge {
    display: inline-block;
    padding: 2px 10px;
    border-radius: 9999px;
    font-size: 0.75rem;
    font-weight: 600;
    letter-spacing: 0.03em;
    text-transform: uppercase;
}
.status-normal     { background: %(success_light)s; color: %(success)s; }
.status-borderline { background: %(warning_light)s; color: %(warning)s; }
.status-abnormal   { background: %(danger_light)s;  color: %(danger)s; }
.status-unknown    { background: %(border)s;        color: %(text_muted)s; }

/* ---------- KPI tile ---------- */
.kpi-tile {
    background: %(bg_card)s;
    border: 1px solid %(border)s;
    border-radius: 12px;
    padding: 20px;
    text-align: center;
    box-shadow: 0 1px 3px rgba(0,0,0,0.06);
}
.kpi-value {
    font-size: 2rem;
    font-weight: 800;
    line-height: 1.1;
}
.kpi-label {
    font-size: 0.82rem;
    color: %(text_muted)s;
    text-transform: uppercase;
    letter-spacing: 0.04em;
    margin-top: 6px;
}

/* ---------- Info card ---------- */
.info-label { color: %(text_secondary)s; font-size: 0.78rem; text-transform: uppercase; letter-spacing: 0.04em; }
.info-value { color: %(text)s; font-size: 1rem; font-weight: 600; }

/* ---------- Critical flags ---------- */
.critical-card {
    background: %(danger_light)s;
    border-left: 4px solid %(danger)s;
    border-radius: 8px;
    padding: 16px 20px;
    margin-bottom: 12px;
    color: %(danger)s;
}

/* ---------- Section title ---------- */
.section-title {
    font-size: 1.15rem;
    font-weight: 700;
    color: %(text)s;
    margin: 24px 0 12px 0;
    padding-bottom: 8px;
    border-bottom: 2px solid %(primary)s;
    display: inline-block;
}
</style>
"""


def apply_theme() -> None:
    """Inject global CSS into the page. Call once at the top of every page."""
    st.markdown(_CSS_TEMPLATE % COLORS, unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# Reusable HTML helpers
# ---------------------------------------------------------------------------
def status_badge(status: str | None) -> str:
    """Return an HTML span styled for a finding status."""
    key = (status or "").strip().lower()
    cls = STATUS_CLASSES.get(key, "status-unknown")
    return f'<span class="status-badge {cls}">{key or "n/a"}</span>'


def risk_badge(risk_level: str | None) -> str:
    level = (risk_level or "low").lower()
    color = RISK_COLORS.get(level, COLORS["text_muted"])
    return (
        f'<span style="display:inline-block;padding:4px 14px;border-radius:9999px;'
        f'background:{color};color:white;font-weight:700;font-size:0.85rem;">'
        f'{level.upper()} RISK</span>'
    )


def kpi_tile(label: str, value: str | int | float, color: str) -> str:
    """Return HTML for a single KPI tile."""
    return (
        f'<div class="kpi-tile">'
        f'  <div class="kpi-value" style="color:{color};">{value}</div>'
        f'  <div class="kpi-label">{label}</div>'
        f'</div>'
    )


def section_title(text: str) -> None:
    """Render a styled section heading."""
    st.markdown(f'<div class="section-title">{text}</div>', unsafe_allow_html=True)
