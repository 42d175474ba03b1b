"""Shared fixtures: fast settings, a throwaway SQLite store, scripted model stubs."""

import json

import pytest

from truth_tracker.config import Settings
from truth_tracker.database import Database


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        openai_api_key="",
        use_ollama=False,
        mock_mode=False,
        promise_source_delay=0,
        incident_source_delay=0,
        item_delay=0,
        admin_emails="admin@example.org",
        database_url=f"sqlite:///{tmp_path / 'tracker.db'}",
    )


@pytest.fixture
def db(settings):
    database = Database(settings.database_url)
    database.create_tables()
    return database


class ScriptedLLM:
    """Stand-in for LLMService.generate that replays canned responses.

    responses may be a list (consumed in order, last one repeats), a callable
    taking the prompt, or an Exception instance to raise.
    """

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def generate(self, prompt, system_prompt=None, temperature=None,
                       max_tokens=None, json_mode=False):
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "json_mode": json_mode})
        if callable(self.responses):
            response = self.responses(prompt)
        elif isinstance(self.responses, list):
            index = min(len(self.calls) - 1, len(self.responses) - 1)
            response = self.responses[index]
        else:
            response = self.responses
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


def promise_payload(title, score, description="", politician=""):
    return {
        "title": title,
        "description": description or f"{title} within two years",
        "party": "Example Party",
        "politician": politician,
        "category": "infrastructure",
        "credibilityScore": score,
        "analysis": {
            "feasibility": "Plausible",
            "specificity": "Measurable",
            "redFlags": [],
            "confidence": 80,
        },
    }
