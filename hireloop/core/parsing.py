"""Helpers for reading structured data out of model responses."""

import json
import logging
import math
from typing import Any

logger = logging.getLogger(__name__)


def extract_json_object(response: str | None) -> dict[str, Any] | None:
    """Parse the outermost JSON object in a response, or None."""
    if not response:
        return None
    json_start = response.find("{")
    json_end = response.rfind("}") + 1
    if json_start < 0 or json_end <= json_start:
        return None
    try:
        data = json.loads(response[json_start:json_end])
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse JSON from model response: {e}")
        return None
    return data if isinstance(data, dict) else None


def coerce_int(value: Any) -> int | None:
    """Best-effort conversion of a model-provided number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    if isinstance(value, float):
        # json.loads reads 1e999 as inf; NaN and infinities are not scores
        return int(round(value)) if math.isfinite(value) else None
    return None
