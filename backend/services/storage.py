"""Storage adapters for patients and test results.

``MemStorage`` keeps everything in process memory and loses it on restart.
``SqlStorage`` persists to the database configured by ``DATABASE_URL`` using
the schema managed by Alembic. Both hand out copies; callers mutate state only
through the adapter's operations.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from backend.config import Settings
from backend.database import SessionLocal
from backend.models.patient import PatientRecord
from backend.models.test_result import TestResultRecord
from backend.schemas.patient import Patient, PatientCreate
from backend.schemas.report import StructuredReport
from backend.schemas.test_result import TestResult, TestResultCreate

logger = logging.getLogger(__name__)


class Storage(ABC):
    @abstractmethod
    def get_patient(self, patient_id: str) -> Patient | None: ...

    @abstractmethod
    def create_patient(self, data: PatientCreate) -> Patient:
        """Store a new patient. Uniqueness of ``patient_id`` is the caller's concern."""

    @abstractmethod
    def create_test_result(self, data: TestResultCreate) -> TestResult:
        """Store a pending test result (``ai_report`` is None)."""

    @abstractmethod
    def get_test_result(self, result_id: int) -> TestResult | None: ...

    @abstractmethod
    def get_test_results(self, patient_id: str) -> list[TestResult]: ...

    @abstractmethod
    def update_test_result_with_report(self, result_id: int, report: StructuredReport) -> TestResult | None:
        """Attach ``report`` to a stored result. Returns None, changing nothing, for an unknown id."""


class MemStorage(Storage):
    """Process-local storage shared by event-loop and threadpool handlers, guarded by ``_lock``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._patients: dict[str, Patient] = {}
        self._test_results: dict[int, TestResult] = {}
        self._next_patient_id = 1
        self._next_test_result_id = 1

    def get_patient(self, patient_id: str) -> Patient | None:
        with self._lock:
            patient = self._patients.get(patient_id)
            return patient.model_copy(deep=True) if patient else None

    def create_patient(self, data: PatientCreate) -> Patient:
        with self._lock:
            patient = Patient(**data.model_dump(), id=self._next_patient_id, created_at=datetime.utcnow())
            self._next_patient_id += 1
            self._patients[patient.patient_id] = patient
            return patient.model_copy(deep=True)

    def create_test_result(self, data: TestResultCreate) -> TestResult:
        with self._lock:
            result = TestResult(
                **data.model_dump(),
                id=self._next_test_result_id,
                ai_report=None,
                created_at=datetime.utcnow(),
            )
            self._next_test_result_id += 1
            self._test_results[result.id] = result
            return result.model_copy(deep=True)

    def get_test_result(self, result_id: int) -> TestResult | None:
        with self._lock:
            result = self._test_results.get(result_id)
            return result.model_copy(deep=True) if result else None

    def get_test_results(self, patient_id: str) -> list[TestResult]:
        with self._lock:
            return [
                result.model_copy(deep=True)
                for result in self._test_results.values()
                if result.patient_id == patient_id
            ]

    def update_test_result_with_report(self, result_id: int, report: StructuredReport) -> TestResult | None:
        with self._lock:
            result = self._test_results.get(result_id)
            if result is None:
                return None
            updated = result.model_copy(update={"ai_report": report.model_copy(deep=True)})
            self._test_results[result_id] = updated
            return updated.model_copy(deep=True)



def _patient_from_record(record: PatientRecord) -> Patient:
    return Patient(
        id=record.id,
        patient_id=record.patient_id,
        name=record.name,
        age=record.age,
        gender=record.gender,
        created_at=record.created_at,
    )


def _test_result_from_record(record: TestResultRecord) -> TestResult:
    return TestResult(
        id=record.id,
        patient_id=record.patient_id,
        test_type=record.test_type,
        parameters=dict(record.parameters or {}),
        ai_report=StructuredReport.model_validate(record.ai_report) if record.ai_report is not None else None,
        created_at=record.created_at,
    )


class SqlStorage(Storage):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def get_patient(self, patient_id: str) -> Patient | None:
        with self._session() as db:
            record = db.query(PatientRecord).filter(PatientRecord.patient_id == patient_id).first()
            return _patient_from_record(record) if record else None

    def create_patient(self, data: PatientCreate) -> Patient:
        with self._session() as db:
            record = PatientRecord(
                patient_id=data.patient_id,
                name=data.name,
                age=data.age,
                gender=data.gender,
                created_at=datetime.utcnow(),
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return _patient_from_record(record)

    def create_test_result(self, data: TestResultCreate) -> TestResult:
        with self._session() as db:
            record = TestResultRecord(
                patient_id=data.patient_id,
                test_type=data.test_type,
                parameters=dict(data.parameters),
                ai_report=None,
                created_at=datetime.utcnow(),
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return _test_result_from_record(record)

    def get_test_result(self, result_id: int) -> TestResult | None:
        with self._session() as db:
            record = db.query(TestResultRecord).filter(TestResultRecord.id == result_id).first()
            return _test_result_from_record(record) if record else None

    def get_test_results(self, patient_id: str) -> list[TestResult]:
        with self._session() as db:
            rows = (
                db.query(TestResultRecord)
                .filter(TestResultRecord.patient_id == patient_id)
                .order_by(TestResultRecord.id.asc())
                .all()
            )
            return [_test_result_from_record(row) for row in rows]

    def update_test_result_with_report(self, result_id: int, report: StructuredReport) -> TestResult | None:
        with self._session() as db:
            record = db.query(TestResultRecord).filter(TestResultRecord.id == result_id).first()
            if record is None:
                return None
            record.ai_report = report.model_dump(mode="json", by_alias=True)
            db.add(record)
            db.commit()
            db.refresh(record)
            return _test_result_from_record(record)


def build_storage(config: Settings) -> Storage:
    backend = config.storage_backend.strip().lower()
    if backend == "memory":
        logger.info("Using in-memory storage; data is lost on restart")
        return MemStorage()
    if backend == "database":
        logger.info("Using database storage")
        return SqlStorage(SessionLocal)
    raise ValueError(f"Unknown STORAGE_BACKEND {config.storage_backend!r}; expected 'memory' or 'database'")
