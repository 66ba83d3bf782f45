import logging

from fastapi import APIRouter, Depends

from backend.routers.deps import get_storage
from backend.schemas.patient import Patient, PatientCreate
from backend.services.storage import Storage

router = APIRouter(prefix="/api/patients", tags=["patients"])
logger = logging.getLogger(__name__)


@router.post("", response_model=Patient)
def get_or_create_patient(payload: PatientCreate, storage: Storage = Depends(get_storage)):
    # Check-then-create is not atomic; concurrent requests for one patientId may race.
    patient = storage.get_patient(payload.patient_id)
    if patient is None:
        patient = storage.create_patient(payload)
        logger.info("Registered patient %s", patient.patient_id)
    return patient
