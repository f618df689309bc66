"""
Response extraction.

Generated text may wrap the JSON object in commentary or markdown fences.
We take everything from the first "{" to the last "}" and parse it.
There is exactly one heuristic: no repair, no second backend call.
"""

import json
from typing import Any

from spendeka.errors import ExtractionError


def extract_json_object(raw: str) -> dict[str, Any]:
    """
    Extract the first JSON object embedded in generated text.

    Raises:
        ExtractionError: If there is no brace-delimited span, or the span
            is not valid JSON.
    """
    if not isinstance(raw, str):
        raise ExtractionError("Generation backend returned no text")

    start = raw.find("{")
    end = raw.rfind("}")
    if start < 0 or end <= start:
        raise ExtractionError("No JSON object found in generation backend response")

    try:
        return json.loads(raw[start:end + 1])
    except json.JSONDecodeError as e:
        raise ExtractionError() from e
