"""Response Parser - Turns one raw model payload into a typed item list.

Priority order:
1. Strict JSON decode of the whole payload.
2. Cleaned decode: code fences stripped, trailing commas fixed, the first
   balanced JSON object pulled out of surrounding prose.
3. Line-oriented extraction of list items (bullets, numbers, quotes).
"""

import json
import re
from typing import Any, Optional

from comptable.logging import get_logger
from comptable.models.output import EntityKind, RawModelResponse, failed_response

logger = get_logger("comptable.pipeline.parser")

NO_ITEMS_FAILURE = "Could not parse response - no items found"

# Ordered; the first capturing group of the first match is the item.
LIST_ITEM_PATTERNS = [
    re.compile(r"^[-•*]\s*(.+)$"),       # bullet points
    re.compile(r"^\d+\.\s*(.+)$"),       # 1. numbered
    re.compile(r"^\d+\)\s*(.+)$"),       # 1) numbered
    re.compile(r"^[\"']([^\"']+)[\"']$"),  # quoted
]

MIN_BARE_LINE_LENGTH = 3

COMPETITOR_KEYWORDS = ("compet", "alternative", "rival")
CRITERIA_KEYWORDS = ("criteri", "feature", "factor", "aspect")

_TRAILING_COMMA = re.compile(r",\s*([}\]])")


class _NotStructured(Exception):
    """The payload does not decode to JSON at all."""


def _strip_fences(text: str) -> str:
    clean = text.strip()
    if clean.startswith("```"):
        clean = clean.split("\n", 1)[1] if "\n" in clean else clean[3:]
    clean = clean.strip()
    if clean.endswith("```"):
        clean = clean[:-3]
    return clean.strip()


def _balanced_slice(text: str, opener: str) -> Optional[str]:
    """Return the first balanced {...} or [...] span, ignoring brackets in strings."""
    closer = "}" if opener == "{" else "]"
    start = text.find(opener)
    if start == -1:
        return None
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        c = text[i]
        if escape_next:
            escape_next = False
            continue
        if c == "\\" and in_string:
            escape_next = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c in "[{":
            depth += 1
        elif c in "]}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1] if c == closer else None
    return None


def extract_json(text: str, expected_type: str = "object") -> Any:
    """
    Extract and parse JSON from an LLM response, handling common issues.

    Handles markdown code fences, trailing commas and extra text around
    the JSON.

    Args:
        text: Raw model output
        expected_type: "object" to find {...}, "array" to find [...]

    Returns:
        The decoded JSON value

    Raises:
        ValueError: If no JSON value can be recovered
    """
    clean = _strip_fences(text)

    try:
        return json.loads(clean)
    except json.JSONDecodeError:
        pass

    fixed = _TRAILING_COMMA.sub(r"\1", clean)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError:
        pass

    candidate = _balanced_slice(clean, "[" if expected_type == "array" else "{")
    if candidate is not None:
        try:
            return json.loads(_TRAILING_COMMA.sub(r"\1", candidate))
        except json.JSONDecodeError:
            pass

    raise ValueError("No JSON found in response")


def _string_items(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    items = []
    for value in values:
        if isinstance(value, str) and value.strip():
            items.append(value.strip())
    return items


def _from_structured(
    model: str, data: Any, kind: Optional[EntityKind]
) -> RawModelResponse:
    """Validate a decoded JSON value into a response."""
    if not isinstance(data, dict):
        return failed_response(model, kind or "competitors", "Structured response is not a JSON object")

    if kind is None:
        for candidate in ("competitors", "criteria"):
            if _string_items(data.get(candidate)):
                kind = candidate
                break
        else:
            return failed_response(model, "competitors", "Structured response has no competitors or criteria list")

    items = _string_items(data.get(kind))
    if not items:
        return failed_response(model, kind, f"Structured response has no '{kind}' list")
    return RawModelResponse(model=model, kind=kind, items=items)


def _is_json_payload(payload: str) -> bool:
    """True when the payload is nothing but JSON once code fences are removed."""
    return _strip_fences(payload).startswith(("{", "["))


def _decode_strict(payload: str) -> Any:
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise _NotStructured() from e


def _decode_cleaned(payload: str) -> Any:
    try:
        return extract_json(payload, expected_type="object")
    except ValueError as e:
        raise _NotStructured() from e


def extract_list_items(content: str) -> list[str]:
    """
    Pull list items out of free text, one per line.

    Args:
        content: Raw model output

    Returns:
        Items in order of appearance (possibly empty)
    """
    lines = [line.strip() for line in content.split("\n")]
    items = []
    for line in lines:
        if not line:
            continue
        matched = False
        for pattern in LIST_ITEM_PATTERNS:
            match = pattern.match(line)
            if match:
                item = match.group(1).strip()
                if item:
                    items.append(item)
                    matched = True
                    break
        if not matched and len(line) >= MIN_BARE_LINE_LENGTH and ":" not in line:
            items.append(line)
    return items


def infer_kind(content: str) -> EntityKind:
    """Guess what a free-text list is about; competitors when unclear."""
    lowered = content.lower()
    if any(keyword in lowered for keyword in COMPETITOR_KEYWORDS):
        return "competitors"
    if any(keyword in lowered for keyword in CRITERIA_KEYWORDS):
        return "criteria"
    return "competitors"


def parse_response(
    model: str, payload: str, kind: Optional[EntityKind] = None
) -> RawModelResponse:
    """
    Parse one raw model payload.

    Args:
        model: Model identifier the payload came from
        payload: Raw response text
        kind: What the prompt asked for, when known

    Returns:
        RawModelResponse with items, or a failure (never empty-but-successful)
    """
    for decode in (_decode_strict, _decode_cleaned):
        try:
            data = decode(payload)
        except _NotStructured:
            continue
        response = _from_structured(model, data, kind)
        if response.ok:
            return response
        if decode is _decode_strict or _is_json_payload(payload):
            logger.debug("structured_parse_failed", model=model, reason=response.failure)
            return response
        # JSON picked out of prose with no usable list; read the prose instead
        logger.debug("embedded_json_ignored", model=model, reason=response.failure)
        break

    items = extract_list_items(payload)
    resolved_kind = kind or infer_kind(payload)
    if not items:
        logger.debug("text_parse_failed", model=model, preview=payload[:200])
        return failed_response(model, resolved_kind, NO_ITEMS_FAILURE)

    logger.debug("text_parse_fallback", model=model, kind=resolved_kind, count=len(items))
    return RawModelResponse(model=model, kind=resolved_kind, items=items)
