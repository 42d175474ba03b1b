"""Language-model duplicate check of a promise candidate against recent history."""

import logging
from typing import Optional, Sequence

from pydantic import ValidationError

from ..config import Settings, get_settings
from ..errors import DuplicateCheckError
from ..schemas import DuplicateVerdictLLM, ExtractedPromise, ModelErrorPolicy
from ..tools.json_repair import parse_json_response

logger = logging.getLogger(__name__)

DUPLICATE_SYSTEM_PROMPT = """You are a duplicate detection expert. Compare the new promise with existing promises and determine if it's a duplicate.

Return JSON: {"isDuplicate": true/false, "reason": "explanation"}"""

DUPLICATE_PROMPT = """New Promise: {candidate}

Existing Promises:
{existing}

Is the new promise substantially similar to any existing promise?"""


class DuplicateChecker:
    """Fails open: any model trouble means "not a duplicate"."""

    def __init__(
        self,
        llm,
        settings: Optional[Settings] = None,
        on_model_error: ModelErrorPolicy = ModelErrorPolicy.ASSUME_NOT_DUPLICATE,
    ):
        self.llm = llm
        self.settings = settings or get_settings()
        if on_model_error != ModelErrorPolicy.ASSUME_NOT_DUPLICATE:
            raise ValueError(f"Unsupported model error policy for duplicate check: {on_model_error}")
        self.on_model_error = ModelErrorPolicy(on_model_error)

    async def is_duplicate(
        self,
        candidate: ExtractedPromise,
        recent_history: Sequence[ExtractedPromise],
    ) -> bool:
        """
        True when the model judges the candidate substantially similar to one
        of the most recent history items.

        History is ordered oldest first; only the last dedup_compare_limit
        items are shown to the model. Empty history never calls the model.
        """
        if not recent_history:
            return False

        compared = list(recent_history)[-self.settings.dedup_compare_limit:]
        try:
            verdict = await self._call_model(candidate, compared)
        except DuplicateCheckError as e:
            logger.warning(f"[FAIL] Duplicate check for '{candidate.title}': {e} "
                           f"(policy={self.on_model_error.value})")
            return False

        if verdict.is_duplicate:
            logger.debug(f"Duplicate: '{candidate.title}': {verdict.reason}")
        return verdict.is_duplicate

    async def _call_model(
        self,
        candidate: ExtractedPromise,
        compared: Sequence[ExtractedPromise],
    ) -> DuplicateVerdictLLM:
        prompt = DUPLICATE_PROMPT.format(
            candidate=candidate.summary_line(),
            existing="\n".join(p.summary_line() for p in compared),
        )
        try:
            response = await self.llm.generate(
                prompt=prompt,
                system_prompt=DUPLICATE_SYSTEM_PROMPT,
                json_mode=True,
            )
        except Exception as e:
            raise DuplicateCheckError(f"model call failed: {e}") from e

        try:
            return DuplicateVerdictLLM.model_validate(parse_json_response(response))
        except (ValueError, ValidationError) as e:
            raise DuplicateCheckError(f"unusable model response: {str(e)[:200]}") from e
