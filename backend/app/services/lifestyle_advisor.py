"""
Diet and lifestyle suggestions generated by Gemini.

Suggestions are a best-effort extra on top of product recommendations:
when Gemini is not configured, fails, or returns nothing usable, the
advisor returns an empty list.
"""

import logging
import re
from typing import Any, List, Optional, Sequence

from google import genai
from google.genai import types

from app.config import settings
from app.models.analysis import SkinAnalysis

# Configure logging
logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 6
MIN_SUGGESTION_LENGTH = 6

SYSTEM_PROMPT = (
    "You are a dermatology assistant. Based on the provided skin analysis and user "
    "description, produce up to 6 concise, practical diet and lifestyle suggestions. "
    "Return them as a plain list, one suggestion per line. Avoid medical diagnosis."
)

_LIST_PREFIX = re.compile(r'^[-•*\d.)\s]+')


def parse_suggestions(text: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    """
    Split model output into suggestion lines.

    Bullet and numbering prefixes are stripped; fragments shorter than
    MIN_SUGGESTION_LENGTH characters are dropped.
    """
    suggestions = []
    for line in (text or "").splitlines():
        cleaned = _LIST_PREFIX.sub("", line).strip()
        if len(cleaned) >= MIN_SUGGESTION_LENGTH:
            suggestions.append(cleaned)
    return suggestions[:limit]


def build_prompt(
    analysis: Optional[SkinAnalysis],
    description: Optional[str],
    conditions: Sequence[str] = ()
) -> str:
    """Render the user message from the analysis and the user's own words."""
    lines = []
    if analysis is not None:
        lines.append(f"Skin type: {analysis.skin_type}")
        if analysis.detected_conditions:
            lines.append(f"Detected conditions: {', '.join(analysis.detected_conditions)}")
        if analysis.observations:
            lines.append(f"Observations: {'; '.join(analysis.observations)}")
    if conditions:
        lines.append(f"Selected conditions: {', '.join(conditions)}")
    lines.append(f"User description: {description or 'none provided'}")
    return "\n".join(lines)


class LifestyleAdvisor:
    """
    Generates diet and lifestyle suggestions for a skin profile.

    Attributes:
        model: Gemini model name
        client: google-genai client, None when no API key is configured
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[Any] = None
    ):
        api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.LLM_MODEL
        self.client = client
        if self.client is None and api_key:
            self.client = genai.Client(api_key=api_key)

        logger.info(f"LifestyleAdvisor initialized (enabled: {self.client is not None})")

    def generate_suggestions(
        self,
        analysis: Optional[SkinAnalysis],
        description: Optional[str] = None,
        conditions: Sequence[str] = ()
    ) -> List[str]:
        """
        Produce up to six diet and lifestyle suggestions.

        Args:
            analysis: Skin analysis of the uploaded image, if any
            description: User's free-text description, if any
            conditions: Effective condition set

        Returns:
            List[str]: Suggestions, empty when unavailable
        """
        if self.client is None:
            return []

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=build_prompt(analysis, description, conditions),
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_PROMPT,
                    temperature=0.6,
                    max_output_tokens=400,
                ),
            )
        except Exception as e:
            logger.error(f"Suggestion generation failed: {e}")
            return []

        suggestions = parse_suggestions(response.text if response else "")
        logger.info(f"Generated {len(suggestions)} lifestyle suggestions")
        return suggestions
