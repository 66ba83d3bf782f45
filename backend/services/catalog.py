import re
from typing import Iterable

from rapidfuzz import fuzz

from backend.config import settings
from backend.schemas.catalog import ParameterDef, TestTypeOption

UNKNOWN_RANGE = "Reference range not available"

TEST_TYPE_OPTIONS = [
    ("blood", "Blood Panel"),
    ("urine", "Urine Analysis"),
    ("lipid", "Lipid Profile"),
    ("thyroid", "Thyroid Function"),
    ("liver", "Liver Function"),
]

PARAMETER_CATALOG: dict[str, list[dict]] = {
    "blood": [
        {"name": "Hemoglobin", "unit": "g/dL", "normal_range": "12.0-16.0", "step": 0.1},
        {"name": "White Blood Cells", "unit": "×10³/μL", "normal_range": "4.0-11.0", "step": 0.1},
        {"name": "Platelets", "unit": "×10³/μL", "normal_range": "150-450"},
        {"name": "Glucose", "unit": "mg/dL", "normal_range": "70-100"},
        {"name": "Hematocrit", "unit": "%", "normal_range": "36-46", "step": 0.1},
    ],
    "urine": [
        {"name": "Protein", "unit": "mg/dL", "normal_range": "0-8", "step": 0.1},
        {"name": "Glucose", "unit": "mg/dL", "normal_range": "0"},
        {"name": "Specific Gravity", "unit": "", "normal_range": "1.003-1.030", "step": 0.001},
        {"name": "pH", "unit": "", "normal_range": "4.6-8.0", "step": 0.1},
        {"name": "Ketones", "unit": "mg/dL", "normal_range": "Negative"},
    ],
    "lipid": [
        {"name": "Total Cholesterol", "unit": "mg/dL", "normal_range": "<200"},
        {"name": "HDL Cholesterol", "unit": "mg/dL", "normal_range": ">40 (M), >50 (F)"},
        {"name": "LDL Cholesterol", "unit": "mg/dL", "normal_range": "<100"},
        {"name": "Triglycerides", "unit": "mg/dL", "normal_range": "<150"},
        {"name": "Non-HDL Cholesterol", "unit": "mg/dL", "normal_range": "<130"},
    ],
    "thyroid": [
        {"name": "TSH", "unit": "mIU/L", "normal_range": "0.4-4.0", "step": 0.01},
        {"name": "Free T4", "unit": "ng/dL", "normal_range": "0.8-1.8", "step": 0.01},
        {"name": "Free T3", "unit": "pg/mL", "normal_range": "2.3-4.2", "step": 0.01},
        {"name": "T4 Total", "unit": "μg/dL", "normal_range": "4.5-12.0", "step": 0.1},
    ],
    "liver": [
        {"name": "ALT", "unit": "U/L", "normal_range": "7-56"},
        {"name": "AST", "unit": "U/L", "normal_range": "10-40"},
        {"name": "Bilirubin Total", "unit": "mg/dL", "normal_range": "0.2-1.2", "step": 0.1},
        {"name": "Alkaline Phosphatase", "unit": "U/L", "normal_range": "44-147"},
        {"name": "Albumin", "unit": "g/dL", "normal_range": "3.5-5.0", "step": 0.1},
    ],
}


def lookup(test_type: str) -> list[ParameterDef]:
    """Return the ordered parameter definitions for a test type, or [] if unknown."""
    return [ParameterDef(**item) for item in PARAMETER_CATALOG.get(test_type, [])]


def test_type_options() -> list[TestTypeOption]:
    return [TestTypeOption(value=value, label=label) for value, label in TEST_TYPE_OPTIONS]


def display_name(test_type: str) -> str:
    return dict(TEST_TYPE_OPTIONS).get(test_type, test_type)


def reference_range_for(test_type: str, parameter: str) -> str:
    """Reference range of the first catalog entry whose name contains, or is contained in, ``parameter``."""
    wanted = parameter.lower()
    for item in lookup(test_type):
        name = item.name.lower()
        if wanted in name or name in wanted:
            return f"{item.normal_range} {item.unit}".strip()
    return UNKNOWN_RANGE


def _normalize(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def match_parameter(test_type: str, name: str, threshold: int | None = None) -> ParameterDef | None:
    score_threshold = threshold if threshold is not None else settings.parameter_match_threshold
    name_norm = _normalize(name)
    best_score = -1.0
    best = None
    for item in lookup(test_type):
        score = fuzz.ratio(name_norm, _normalize(item.name))
        if score > best_score:
            best_score = score
            best = item
    if best is not None and best_score >= score_threshold:
        return best
    return None


def unmapped_parameters(test_type: str, names: Iterable[str]) -> list[str]:
    return [name for name in names if match_parameter(test_type, name) is None]
