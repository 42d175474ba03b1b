"""
JSON parsing utilities for LLM output.

Strict: the only tolerance is stripping a markdown code fence
and surrounding prose around the outermost object/array. Truncated or
malformed JSON is an error, never repaired.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)


def parse_json_response(response: str) -> Any:
    """Parse JSON from an LLM response. Raises ValueError on failure."""
    if response is None:
        raise ValueError("Empty model response")
    cleaned = response.strip()

    # Remove markdown code blocks if present
    if cleaned.startswith("```"):
        cleaned = re.sub(r'^```(?:json)?\n?', '', cleaned)
        cleaned = re.sub(r'\n?```$', '', cleaned)
        cleaned = cleaned.strip()

    json_str = extract_json_string(cleaned)
    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.debug(f"Failed to parse JSON: {e}\nResponse: {json_str[:500]}")
        raise ValueError(f"Model response is not valid JSON: {e}") from e


def extract_json_string(text: str) -> str:
    """Extract the outermost JSON object or array from text using bracket counting.

    Returns the text unchanged when no balanced structure is found, so the
    caller's json.loads reports the real error.
    """
    brace_pos = text.find('{')
    bracket_pos = text.find('[')
    if brace_pos == -1 and bracket_pos == -1:
        return text
    # Whichever appears first in the text is the outermost structure
    if bracket_pos != -1 and (brace_pos == -1 or bracket_pos < brace_pos):
        start, open_ch, close_ch = bracket_pos, '[', ']'
    else:
        start, open_ch, close_ch = brace_pos, '{', '}'

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if ch == '\\' and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return text
