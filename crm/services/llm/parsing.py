"""
Helpers to pull JSON out of LLM answers.
"""
import json
import re
from typing import Any

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def extract_json(text: str, opening: str = "{", closing: str = "}") -> Any:
    """
    Parses the JSON value in an LLM answer.

    Strips markdown fences; if the answer still carries prose, parses
    the span between the first `opening` and the last `closing`.

    Raises:
        json.JSONDecodeError: no parseable JSON found
    """
    cleaned = _FENCE.sub("", text.strip()).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        start = cleaned.find(opening)
        end = cleaned.rfind(closing)
        if start == -1 or end <= start:
            raise
        return json.loads(cleaned[start:end + 1])
