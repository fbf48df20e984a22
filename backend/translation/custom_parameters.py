"""Backend-specific custom request parameters.

Users can attach extra fields to outbound backend requests (temperature,
top_p, provider routing flags, ...) through a JSON setting of the form
[{"key": "temperature", "value": "0.2"}, {"key": "stream", "value": false}].
"""

import json
import logging
import re

logger = logging.getLogger(__name__)

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1

# Invariant-culture float syntax: optional sign, digits with optional
# fraction (or a bare fraction), optional exponent; or the NaN and
# (signed) Infinity symbols
_NUMERIC_RE = re.compile(
    r"^\s*(?:[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|NaN|[+-]?Infinity)\s*$",
    re.IGNORECASE,
)


def _coerce_string(value: str):
    """Turn numeric-looking strings into floats, keep everything else."""
    if _NUMERIC_RE.match(value):
        return float(value)
    return value


def _coerce_value(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _coerce_string(value)
    if isinstance(value, int):
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
        return float(value)
    if isinstance(value, float):
        return value
    return json.dumps(value)


def resolve_custom_parameters(parameters_json: str | None) -> list[tuple[str, object]]:
    """Parse the custom parameters JSON into ordered (key, value) pairs.

    Entries without both "key" and "value" are skipped. Absent, empty or
    malformed input yields an empty list; parse errors are logged, never
    raised.

    Args:
        parameters_json: JSON array of {"key": ..., "value": ...} objects

    Returns:
        List of (key, typed value) with value str, int, float or bool
    """
    if not parameters_json or not parameters_json.strip():
        return []

    try:
        entries = json.loads(parameters_json)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error("Failed to parse custom parameters %r: %s", parameters_json, e)
        return []

    if not isinstance(entries, list):
        logger.error("Custom parameters must be a JSON array, got %s", type(entries).__name__)
        return []

    parameters = []
    for entry in entries:
        if not isinstance(entry, dict) or "key" not in entry or "value" not in entry:
            continue
        parameters.append((str(entry["key"]), _coerce_value(entry["value"])))
    return parameters


def add_custom_parameters(request_data: dict, parameters: list[tuple[str, object]] | None) -> dict:
    """Merge parameters into an outbound request payload (later keys win)."""
    for key, value in parameters or []:
        request_data[key] = value
    return request_data
