from backend.models.patient import PatientRecord
from backend.models.test_result import TestResultRecord

__all__ = [
    "PatientRecord",
    "TestResultRecord",
]
