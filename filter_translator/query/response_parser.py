"""
Parse completion text into a JSON object.
"""

import json
import re
from typing import Any, Dict

from filter_translator.core.exceptions import MalformedCompletionError

# Models often wrap JSON in a markdown code fence
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def parse_completion(text: str) -> Dict[str, Any]:
    """
    Parse the text of a completion into a JSON object.

    Accepts bare JSON, JSON inside a ```json fence, and JSON surrounded by
    prose (the outermost braces are used).

    Args:
        text: Raw completion text

    Returns:
        Parsed JSON object

    Raises:
        MalformedCompletionError: If no JSON object can be parsed
    """
    if text is None or not text.strip():
        raise MalformedCompletionError("Completion is empty", raw_output=text)

    candidate = text.strip()
    match = _FENCE_RE.search(candidate)
    if match:
        candidate = match.group(1)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        start, end = candidate.find("{"), candidate.rfind("}")
        if start == -1 or end < start:
            raise MalformedCompletionError(
                f"Completion is not valid JSON: {e}", raw_output=text
            ) from e
        try:
            data = json.loads(candidate[start:end + 1])
        except json.JSONDecodeError as inner:
            raise MalformedCompletionError(
                f"Completion is not valid JSON: {inner}", raw_output=text
            ) from inner

    if not isinstance(data, dict):
        raise MalformedCompletionError(
            f"Completion is a JSON {type(data).__name__}, expected an object",
            raw_output=text,
        )
    return data
