"""
Promise Extraction Agent.

Turns one block of political text into structured promise candidates via
the language model. The model output is parsed strictly and validated with
pydantic; anything unusable falls under the ASSUME_EMPTY policy and the
block simply yields no promises.
"""

import logging
from typing import List, Optional

from pydantic import ValidationError

from ..config import Settings, get_settings
from ..errors import ExtractionParseError
from ..schemas import ExtractedPromise, ModelErrorPolicy, PromiseListLLM
from ..tools.json_repair import parse_json_response

logger = logging.getLogger(__name__)

EXTRACTION_SYSTEM_PROMPT = """You are an expert political analyst specializing in Indian politics. Extract political promises from the given content.

INSTRUCTIONS:
1. Identify specific, actionable political promises or commitments
2. Ignore general statements or opinions
3. Focus on promises that can be measured or verified
4. Rate credibility from 0-100 based on feasibility and specificity
5. Identify any red flags (unrealistic claims, vague language, etc.)

Return a JSON object with this exact structure:
{
  "promises": [
    {
      "title": "Brief promise title",
      "description": "Detailed description of the promise",
      "party": "Political party name",
      "politician": "Politician name if mentioned",
      "category": "Category (economy, healthcare, education, etc.)",
      "credibilityScore": 85,
      "analysis": {
        "feasibility": "Assessment of how realistic this promise is",
        "specificity": "How specific and measurable the promise is",
        "redFlags": ["Array of concerning aspects if any"],
        "confidence": 90
      }
    }
  ]
}"""

EXTRACTION_PROMPT = """Extract political promises from this content:

Source: {source}
URL: {source_url}

Content:
{content}

Focus on Indian political context and parties. Only extract genuine promises, not general statements."""


class PromiseExtractionAgent:
    """
    Extracts promise candidates from text.

    extract() never raises: model or parse failures are logged and handled
    by on_model_error (only ASSUME_EMPTY is meaningful here).
    """

    def __init__(
        self,
        llm,
        settings: Optional[Settings] = None,
        on_model_error: ModelErrorPolicy = ModelErrorPolicy.ASSUME_EMPTY,
    ):
        self.llm = llm
        self.settings = settings or get_settings()
        if on_model_error != ModelErrorPolicy.ASSUME_EMPTY:
            raise ValueError(f"Unsupported model error policy for extraction: {on_model_error}")
        self.on_model_error = ModelErrorPolicy(on_model_error)

    async def extract(self, content: str, source: str, source_url: str) -> List[ExtractedPromise]:
        """Promise candidates with credibility_score >= min_credibility_score."""
        try:
            parsed = await self._call_model(content, source, source_url)
        except ExtractionParseError as e:
            logger.warning(f"[FAIL] Extraction from {source}: {e} (policy={self.on_model_error.value})")
            return []

        promises = [
            ExtractedPromise(
                title=p.title,
                description=p.description,
                party=p.party,
                politician=p.politician,
                category=p.category,
                credibility_score=p.credibility_score,
                source=source,
                source_url=source_url,
                analysis=p.analysis,
            )
            for p in parsed.promises
        ]
        kept = [p for p in promises if p.credibility_score >= self.settings.min_credibility_score]
        if len(kept) < len(promises):
            logger.debug(f"Dropped {len(promises) - len(kept)} low-credibility promises from {source}")
        return kept

    async def _call_model(self, content: str, source: str, source_url: str) -> PromiseListLLM:
        prompt = EXTRACTION_PROMPT.format(source=source, source_url=source_url, content=content)
        try:
            response = await self.llm.generate(
                prompt=prompt,
                system_prompt=EXTRACTION_SYSTEM_PROMPT,
                json_mode=True,
            )
        except Exception as e:
            raise ExtractionParseError(f"model call failed: {e}") from e

        try:
            return PromiseListLLM.model_validate(parse_json_response(response))
        except (ValueError, ValidationError) as e:
            raise ExtractionParseError(f"unusable model response: {str(e)[:200]}") from e
