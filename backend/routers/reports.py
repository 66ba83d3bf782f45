import logging

from fastapi import APIRouter, Depends, HTTPException

from backend.routers.deps import get_storage
from backend.schemas.test_result import TestResult, TestResultCreate
from backend.services.catalog import unmapped_parameters
from backend.services.errors import GenerationFailed
from backend.services.report_generator import OLLAMA_MODEL, generate_ai_report
from backend.services.storage import Storage

router = APIRouter(prefix="/api", tags=["reports"])
logger = logging.getLogger(__name__)

GENERATION_FAILED_MESSAGE = (
    "Failed to generate AI report. "
    f"Please ensure Ollama is running and {OLLAMA_MODEL} model is available."
)


@router.post("/generate-report", response_model=TestResult)
async def generate_report(payload: TestResultCreate, storage: Storage = Depends(get_storage)):
    unmapped = unmapped_parameters(payload.test_type, payload.parameters.keys())
    if unmapped:
        logger.warning("Parameters not in the %s catalog: %s", payload.test_type, ", ".join(unmapped))

    # Persist first so the pending record survives a failed generation.
    test_result = storage.create_test_result(payload)

    try:
        report = await generate_ai_report(payload.test_type, payload.parameters)
    except GenerationFailed as exc:
        logger.error("Report generation failed for test result %s: %s", test_result.id, exc)
        raise HTTPException(status_code=500, detail=GENERATION_FAILED_MESSAGE) from exc

    updated = storage.update_test_result_with_report(test_result.id, report)
    if updated is None:
        raise HTTPException(status_code=500, detail=f"Test result {test_result.id} disappeared before the report was saved")
    return updated
