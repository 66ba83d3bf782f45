from typing import Any, Literal

from pydantic import Field, field_validator, model_serializer

from backend.schemas.base import CamelModel

FindingStatus = Literal["normal", "abnormal", "borderline"]

# Keys dropped from serialized output when unset, so they read as absent rather than null.
_OPTIONAL_KEYS = ("treatmentOptions", "treatment_options", "rawResponse", "raw_response")


class KeyFinding(CamelModel):
    """Interpretation of a single lab parameter."""
    parameter: str = Field(description="Parameter name")
    value: str = Field(description="Measured value, usually with unit")
    reference_range: str = Field(description="Normal reference range with units")
    status: FindingStatus = Field(description="normal, abnormal or borderline")
    interpretation: str = Field(description="Clinical interpretation")

    @field_validator("parameter", "value", "reference_range", "interpretation", mode="before")
    @classmethod
    def _numbers_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _lowercase_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class TreatmentOptions(CamelModel):
    lifestyle: list[str] = Field(default_factory=list)
    medical: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)


class StructuredReport(CamelModel):
    """AI-generated medical report attached to a test result."""
    summary: str
    key_findings: list[KeyFinding]
    recommendations: list[str]
    treatment_options: TreatmentOptions | None = None
    overall_assessment: str
    follow_up_required: bool
    critical_flags: list[str]
    raw_response: str | None = Field(default=None, description="Model output kept for audit on fallback")

    @model_serializer(mode="wrap")
    def _omit_absent_optionals(self, handler):
        data = handler(self)
        for key in _OPTIONAL_KEYS:
            if key in data and data[key] is None:
                del data[key]
        return data
