from fastapi import APIRouter

from backend.schemas.catalog import ParameterDef, TestTypeOption
from backend.services import catalog

router = APIRouter(prefix="/api/test-types", tags=["catalog"])


@router.get("", response_model=list[TestTypeOption])
def list_test_types():
    return catalog.test_type_options()


@router.get("/{test_type}/parameters", response_model=list[ParameterDef], response_model_exclude_none=True)
def list_parameters(test_type: str):
    return catalog.lookup(test_type)
