import pytest

from backend.services import catalog

ALL_TYPES = ["blood", "urine", "lipid", "thyroid", "liver"]


@pytest.mark.parametrize("test_type", ALL_TYPES)
def test_lookup_known_types_is_non_empty(test_type):
    params = catalog.lookup(test_type)
    assert params
    assert all(p.name and p.normal_range for p in params)


@pytest.mark.parametrize("test_type", ["", "cardiac", "Blood", "lipids"])
def test_lookup_unknown_type_is_empty(test_type):
    assert catalog.lookup(test_type) == []


def test_lookup_preserves_order_and_steps():
    names = [p.name for p in catalog.lookup("lipid")]
    assert names == [
        "Total Cholesterol",
        "HDL Cholesterol",
        "LDL Cholesterol",
        "Triglycerides",
        "Non-HDL Cholesterol",
    ]
    specific_gravity = catalog.lookup("urine")[2]
    assert specific_gravity.step == 0.001
    assert specific_gravity.unit == ""


def test_lookup_returns_fresh_copies():
    first = catalog.lookup("blood")
    first[0].name = "Changed"
    assert catalog.lookup("blood")[0].name == "Hemoglobin"


def test_test_type_options_and_display_names():
    options = catalog.test_type_options()
    assert [o.value for o in options] == ALL_TYPES
    assert catalog.display_name("lipid") == "Lipid Profile"
    assert catalog.display_name("cardiac") == "cardiac"


def test_reference_range_matches_substring_case_insensitively():
    assert catalog.reference_range_for("lipid", "total cholesterol") == "<200 mg/dL"
    # "cholesterol" is contained in the first lipid entry's name.
    assert catalog.reference_range_for("lipid", "Cholesterol") == "<200 mg/dL"
    assert catalog.reference_range_for("urine", "Specific Gravity") == "1.003-1.030"
    assert catalog.reference_range_for("blood", "Hgb") == catalog.UNKNOWN_RANGE
    assert catalog.reference_range_for("blood", "Hemoglobin (Hb)") == "12.0-16.0 g/dL"


def test_reference_range_unknown_type():
    assert catalog.reference_range_for("cardiac", "Troponin") == catalog.UNKNOWN_RANGE


def test_match_parameter_tolerates_spelling_variants():
    match = catalog.match_parameter("liver", "bilirubin-total")
    assert match is not None
    assert match.name == "Bilirubin Total"
    assert catalog.match_parameter("liver", "Troponin") is None


def test_unmapped_parameters():
    names = ["TSH", "free t4", "Reverse T3"]
    assert catalog.unmapped_parameters("thyroid", names) == ["Reverse T3"]
