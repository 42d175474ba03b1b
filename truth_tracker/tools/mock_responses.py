"""
Mock LLM responses for offline runs (MOCK_MODE=true).

Deterministic: the same prompt always produces the same response, so a mock
sync run can be repeated and compared.
"""

import hashlib
import json
import logging
import re

logger = logging.getLogger(__name__)

_CATEGORIES = ["economy", "healthcare", "education", "infrastructure", "employment"]


def get_mock_response(prompt: str, json_mode: bool = False) -> str:
    """Return a mock response for the extraction or duplicate-check prompt."""
    prompt_lower = prompt.lower()
    if "extract political promises" in prompt_lower:
        return json.dumps(_mock_extraction(prompt))
    if "new promise:" in prompt_lower:
        return json.dumps(_mock_duplicate_verdict(prompt))
    if json_mode:
        return json.dumps({})
    return "Mock LLM response for testing purposes."


def _mock_extraction(prompt: str) -> dict:
    content = prompt.split("Content:", 1)[-1].strip().split("\n\n", 1)[0]
    if "promise" not in content.lower() and "pledge" not in content.lower():
        return {"promises": []}

    digest = int(hashlib.md5(content.encode()).hexdigest()[:8], 16)
    first_sentence = re.split(r"(?<=[.!?])\s", content)[0][:120]
    return {
        "promises": [
            {
                "title": first_sentence,
                "description": content[:400],
                "party": "Unknown",
                "politician": "",
                "category": _CATEGORIES[digest % len(_CATEGORIES)],
                "credibilityScore": 60 + digest % 40,
                "analysis": {
                    "feasibility": "Plausible within one term given stated budget.",
                    "specificity": "Names a measurable target.",
                    "redFlags": [],
                    "confidence": 70,
                },
            },
            {
                "title": "General statement of intent",
                "description": "Vague commitment without measurable target.",
                "party": "Unknown",
                "politician": "",
                "category": "other",
                "credibilityScore": 30,
                "analysis": {
                    "feasibility": "Unclear",
                    "specificity": "Vague",
                    "redFlags": ["No timeline", "No target"],
                    "confidence": 40,
                },
            },
        ]
    }


def _mock_duplicate_verdict(prompt: str) -> dict:
    match = re.search(r'New Promise: (".*?")\n', prompt)
    new_line = match.group(1) if match else ""
    existing = prompt.split("Existing Promises:", 1)[-1]
    is_dup = bool(new_line) and new_line in existing
    return {
        "isDuplicate": is_dup,
        "reason": "Identical title and description" if is_dup else "No matching promise",
    }
