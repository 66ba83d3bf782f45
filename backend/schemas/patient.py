from datetime import datetime
from typing import Literal

from pydantic import Field

from backend.schemas.base import CamelModel

Gender = Literal["male", "female", "other"]


class PatientCreate(CamelModel):
    patient_id: str = Field(min_length=1, description="External patient identifier or MRN")
    name: str = Field(min_length=1, description="Patient full name")
    age: int = Field(gt=0, le=150)
    gender: Gender


class Patient(PatientCreate):
    id: int
    created_at: datetime
