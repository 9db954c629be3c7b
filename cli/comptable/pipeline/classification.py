"""Keyword heuristics for typing canonical entity names.

Every function here is total: it accepts any string and falls through to a
documented default. Tables are checked in order; the first hit wins.
"""

import re
from typing import Optional

from comptable.models.output import CompetitorKind, ValueType

# "<product> (<company>)"; the last parenthesised group is the company
PRODUCT_PATTERN = re.compile(r"^(.+)\s*\(([^()]+)\)$")

VALUE_TYPE_KEYWORDS: list[tuple[ValueType, tuple[str, ...]]] = [
    ("quantitative", ("price", "cost", "weight", "size", "battery", "range", "speed")),
    ("binary", ("yes/no", "available", "support", "wireless", "waterproof")),
    ("categorical", ("type", "category", "style", "color")),
]
DEFAULT_VALUE_TYPE: ValueType = "qualitative"

UNIT_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("price", "cost"), "USD"),
    (("weight",), "g"),
    (("battery",), "hours"),
    (("size",), "inches"),
    (("speed",), "mph"),
    (("range",), "miles"),
]

QUALITATIVE_SCALE = "1-5"


def classify_competitor(name: str) -> tuple[CompetitorKind, Optional[str]]:
    """
    Classify a competitor name structurally.

    "Model 3 (Tesla)" is a product whose parent is "Tesla"; anything else is
    a company. The "brand" kind is never produced here.

    Returns:
        (kind, parent)
    """
    match = PRODUCT_PATTERN.match(name.strip())
    if match and match.group(1).strip() and match.group(2).strip():
        return "product", match.group(2).strip()
    return "company", None


def infer_value_type(name: str) -> ValueType:
    lowered = name.lower()
    for value_type, keywords in VALUE_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return value_type
    return DEFAULT_VALUE_TYPE


def infer_unit(name: str) -> Optional[str]:
    lowered = name.lower()
    for keywords, unit in UNIT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return unit
    return None


def infer_scale(value_type: ValueType) -> Optional[str]:
    # Only free-form judgements get a rating scale
    return QUALITATIVE_SCALE if value_type == "qualitative" else None


def classify_criterion(name: str) -> tuple[ValueType, Optional[str], Optional[str]]:
    """
    Type a criterion name by keyword containment.

    Returns:
        (value_type, unit, scale)
    """
    value_type = infer_value_type(name)
    return value_type, infer_unit(name), infer_scale(value_type)
