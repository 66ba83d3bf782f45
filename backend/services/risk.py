from typing import TYPE_CHECKING, Literal, Mapping, Sequence

if TYPE_CHECKING:
    from backend.schemas.report import KeyFinding

RiskLevel = Literal["low", "medium", "high"]

# (parameter, high-risk test, medium-risk test) evaluated against the numeric value.
RAW_VALUE_THRESHOLDS = [
    ("total cholesterol", lambda v: v > 240, lambda v: v > 200),
    ("glucose", lambda v: v > 126, lambda v: v > 100),
    ("hemoglobin", lambda v: v < 10, lambda v: v < 12),
]


def to_float(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = "".join(ch for ch in str(value) if ch.isdigit() or ch in {".", "-"})
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def risk_from_findings(key_findings: Sequence["KeyFinding"]) -> RiskLevel:
    statuses = [finding.status for finding in key_findings]
    if "abnormal" in statuses:
        return "high"
    if statuses.count("borderline") > 1:
        return "medium"
    return "low"


def risk_from_parameters(parameters: Mapping[str, object]) -> RiskLevel:
    values = {name.strip().lower(): to_float(value) for name, value in parameters.items()}
    level: RiskLevel = "low"
    for name, is_high, is_medium in RAW_VALUE_THRESHOLDS:
        value = values.get(name)
        if value is None:
            continue
        if is_high(value):
            return "high"
        if is_medium(value):
            level = "medium"
    return level


def derive_risk_level(
    key_findings: Sequence["KeyFinding"] | None,
    parameters: Mapping[str, object] | None = None,
) -> RiskLevel:
    """Classify a result as low, medium or high risk.

    Findings from a generated report take precedence. Raw parameter values are
    consulted only when there are no findings, e.g. for a result still pending.
    """
    if key_findings:
        return risk_from_findings(key_findings)
    if parameters:
        return risk_from_parameters(parameters)
    return "low"
