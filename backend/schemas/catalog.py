from typing import Literal

from backend.schemas.base import CamelModel


class ParameterDef(CamelModel):
    name: str
    unit: str
    normal_range: str
    value_kind: Literal["number", "text"] = "number"
    step: float | None = None


class TestTypeOption(CamelModel):
    value: str
    label: str
