from datetime import datetime
from typing import Literal

from pydantic import Field, computed_field

from backend.schemas.base import CamelModel
from backend.schemas.report import StructuredReport
from backend.services.risk import RiskLevel, derive_risk_level

TestType = Literal["blood", "urine", "lipid", "thyroid", "liver"]
ParameterValue = str | int | float


class TestResultCreate(CamelModel):
    patient_id: str = Field(min_length=1)
    test_type: TestType
    parameters: dict[str, ParameterValue] = Field(description="Parameter name to raw value")


class TestResult(TestResultCreate):
    id: int
    ai_report: StructuredReport | None = None
    created_at: datetime

    @computed_field(alias="riskLevel")
    @property
    def risk_level(self) -> RiskLevel:
        findings = self.ai_report.key_findings if self.ai_report else []
        return derive_risk_level(findings, self.parameters)
