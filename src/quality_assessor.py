"""
Quality Assessor - Advisory cotton classing text from HVI values.

Sends a bale's mapped quality values (typically micronaire and strength) to
Google Gemini and returns a short professional assessment. The result is
purely advisory: it is stored on the bale if the operator asked for it before
completing, and a failure here never blocks weighing.

Environment:
    GEMINI_API_KEY - API key for Google AI Studio
"""
import os
import json
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from logger import get_logger

logger = get_logger(__name__)

MISSING_KEY_MESSAGE = "AI Configuration Error: Missing API Key."
UNAVAILABLE_MESSAGE = "Unable to generate quality analysis at this time."
EMPTY_RESPONSE_MESSAGE = "Analysis complete."

PROMPT_TEMPLATE = """
Act as a professional cotton classer. Analyze this HVI data for a single bale.
Micronaire: {value1}
Strength: {value2}
Other Data: {other}

Provide a strict 3-sentence professional assessment of this cotton's quality, spinning potential, and any premium/discount implications.
Do not use introductory filler words.
"""


class QualityAssessor:
    """
    Gemini-backed quality assessment.

    Attributes:
        model (str): Gemini model name
        temperature (float): Sampling temperature
        max_output_tokens (int): Output cap
    """

    def __init__(self, api_key: Optional[str] = None, model: str = "gemini-2.5-flash",
                 temperature: float = 0.3, max_output_tokens: int = 300, client=None):
        """
        Args:
            api_key: Gemini API key; defaults to GEMINI_API_KEY
            model: Model used for generate_content
            temperature: Sampling temperature
            max_output_tokens: Output token cap
            client: Pre-built genai.Client (tests inject a mock here)
        """
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY", "")
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client = client

    @classmethod
    def from_settings(cls, settings, client=None) -> 'QualityAssessor':
        return cls(
            model=settings.assessment_model,
            temperature=settings.assessment_temperature,
            max_output_tokens=settings.assessment_max_tokens,
            client=client,
        )

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @staticmethod
    def build_prompt(value1: Any, value2: Any, all_mapped_values: Dict[str, Any]) -> str:
        return PROMPT_TEMPLATE.format(
            value1=value1,
            value2=value2,
            other=json.dumps(all_mapped_values, ensure_ascii=False, default=str),
        )

    def assess(self, value1: Any, value2: Any, all_mapped_values: Dict[str, Any]) -> str:
        """
        Return assessment text for one bale.

        Never raises for API problems: a missing key or a failed request is
        reported as text, because the assessment is optional.
        """
        if self._client is None and not self.api_key:
            logger.error("GEMINI_API_KEY not set, quality assessment unavailable")
            return MISSING_KEY_MESSAGE

        prompt = self.build_prompt(value1, value2, all_mapped_values)

        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except Exception as e:
            # Advisory only: log and degrade to a fixed message
            logger.error(f"Gemini API error during quality assessment: {e}", exc_info=True)
            return UNAVAILABLE_MESSAGE

        text = (response.text or '').strip()
        logger.debug(f"Quality assessment received ({len(text)} chars)")
        return text or EMPTY_RESPONSE_MESSAGE
