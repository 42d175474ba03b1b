"""
Shared tools.

- llm_service.py: LLMService for all language-model calls
- json_repair.py: strict JSON parsing of model output
- mock_responses.py: deterministic offline responses
"""

from truth_tracker.tools.llm_service import LLMService

__all__ = ["LLMService"]
