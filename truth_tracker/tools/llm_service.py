"""
LLM Service -- pydantic-ai backed text completion.

The pipeline needs a single capability: generate text from a system prompt
plus a user prompt. Callers parse and validate the JSON themselves, so this
layer raises on provider failure and never second-guesses the output.

Provider priority: OpenAI → Ollama (OpenAI-compatible /v1 endpoint).
MOCK_MODE returns deterministic canned responses without any network call.
"""

import logging
from typing import Dict, Optional

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

JSON_INSTRUCTION = "\nYou must respond with valid JSON only. No markdown, no explanation."


class LLMService:
    """High-level LLM service backed by pydantic-ai.

    Agents are cached per system prompt across instances; the extraction and
    duplicate prompts are fixed, so a run reuses two agents.
    """

    _agent_cache: Dict[tuple, Agent] = {}

    def __init__(self, settings: Optional[Settings] = None, mock_mode: bool = False):
        self.settings = settings or get_settings()
        self.mock_mode = mock_mode or self.settings.mock_mode
        self.llm_config = self.settings.get_llm_config()
        if self.mock_mode:
            logger.info("LLM: MOCK mode")
        else:
            logger.info(f"LLM: {self.llm_config['provider']}/{self.llm_config.get('model', '-')}")

    def _build_model(self) -> OpenAIChatModel:
        config = self.llm_config
        if config["provider"] == "none":
            raise RuntimeError("No LLM provider configured (set OPENAI_API_KEY or USE_OLLAMA)")
        provider = OpenAIProvider(api_key=config["api_key"], base_url=config.get("base_url"))
        return OpenAIChatModel(config["model"], provider=provider)

    def _get_or_create_agent(self, system_prompt: str) -> Agent:
        key = (self.llm_config["provider"], self.llm_config.get("model"), hash(system_prompt))
        if key not in self._agent_cache:
            self._agent_cache[key] = Agent(
                self._build_model(),
                output_type=str,
                system_prompt=system_prompt,
            )
        return self._agent_cache[key]

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        """Generate text. Raises RuntimeError when the provider call fails."""
        if self.mock_mode:
            from . import mock_responses
            return mock_responses.get_mock_response(prompt, json_mode)

        sys_prompt = (system_prompt or "") + (JSON_INSTRUCTION if json_mode else "")
        agent = self._get_or_create_agent(sys_prompt)
        try:
            result = await agent.run(
                prompt,
                model_settings=ModelSettings(
                    temperature=self.settings.llm_temperature if temperature is None else temperature,
                    max_tokens=max_tokens or self.settings.llm_max_tokens,
                ),
            )
        except Exception as e:
            logger.warning(f"LLM call failed ({self.llm_config['provider']}): {type(e).__name__}: {str(e)[:150]}")
            raise RuntimeError(f"LLM provider failed: {e}") from e

        response = result.output
        if not response:
            raise RuntimeError("Empty response")
        return response

    @classmethod
    def clear_cache(cls):
        """Clear agent cache. Useful for testing or config changes."""
        cls._agent_cache.clear()
