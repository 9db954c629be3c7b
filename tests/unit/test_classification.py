import pytest

from comptable.pipeline.classification import (
    classify_competitor,
    classify_criterion,
    infer_unit,
    infer_value_type,
)


def test_product_with_parent():
    assert classify_competitor("Model 3 (Tesla)") == ("product", "Tesla")


@pytest.mark.parametrize("name, parent", [
    ("Model Y (Long Range) (Tesla)", "Tesla"),
    ("Galaxy Buds (2nd Gen) (Samsung)", "Samsung"),
])
def test_parent_is_last_parenthesised_group(name, parent):
    assert classify_competitor(name) == ("product", parent)



@pytest.mark.parametrize("name", ["Tesla", "Rivian Automotive", "(Tesla)", "", "Uber Eats ()"])
def test_company_default(name):
    assert classify_competitor(name) == ("company", None)


def test_battery_life():
    assert classify_criterion("Battery Life") == ("quantitative", "hours", None)


def test_color():
    assert classify_criterion("Color") == ("categorical", None, None)


def test_qualitative_gets_scale():
    assert classify_criterion("Build Quality") == ("qualitative", None, "1-5")


@pytest.mark.parametrize("name,value_type", [
    ("Price", "quantitative"),
    ("Total Cost of Ownership", "quantitative"),
    ("Weight", "quantitative"),
    ("Screen Size", "quantitative"),
    ("Top Speed", "quantitative"),
    ("Wireless Charging", "binary"),
    ("Waterproof", "binary"),
    ("Customer Support", "binary"),
    ("Offline Mode Available", "binary"),
    ("Yes/No Autopilot", "binary"),
    ("Body Style", "categorical"),
    ("Vehicle Category", "categorical"),
    ("Design", "qualitative"),
])
def test_value_types(name, value_type):
    assert infer_value_type(name) == value_type


def test_quantitative_checked_before_binary():
    # "range" and "wireless" both match; the quantitative table comes first
    assert infer_value_type("Wireless Range") == "quantitative"


@pytest.mark.parametrize("name,unit", [
    ("Price", "USD"),
    ("Monthly Cost", "USD"),
    ("Weight", "g"),
    ("Battery Capacity", "hours"),
    ("Display Size", "inches"),
    ("Charging Speed", "mph"),
    ("Driving Range", "miles"),
    ("Color", None),
])
def test_units(name, unit):
    assert infer_unit(name) == unit


def test_classification_is_case_insensitive():
    assert classify_criterion("BATTERY LIFE") == classify_criterion("battery life")
