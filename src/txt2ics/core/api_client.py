"""Completion service clients for calendar event extraction."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from txt2ics.config.constants import API_KEY_ERROR_PATTERNS
from txt2ics.config.settings import API_CONFIG, APIConfig
from txt2ics.exceptions.errors import CalendarAPIError
from txt2ics.storage.key_manager import mask_key

logger = logging.getLogger(__name__)

# Finish reasons that mean the model declined to answer
REFUSAL_FINISH_REASONS = {"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}


@dataclass
class CompletionResult:
    """What the completion service returned.

    ``payload`` is either decoded data or response text; ``refusal`` holds
    the service's reason when it declined to answer.
    """

    payload: Any = None
    refusal: Optional[str] = None


class CompletionService(Protocol):
    """Anything that can turn text into schema-shaped data."""

    async def complete(
        self,
        system_prompt: str,
        text: str,
        schema: Dict,
        model: Optional[str] = None,
    ) -> CompletionResult:
        ...


def is_api_key_error(error: Exception) -> bool:
    """Check if error is related to API key issues.

    Args:
        error: The exception to check.

    Returns:
        True if the error is an API key error.
    """
    error_str = str(error).lower()
    return any(pattern in error_str for pattern in API_KEY_ERROR_PATTERNS)


def wrap_api_key_error(error: Exception, masked_key: str) -> CalendarAPIError:
    """Wrap API key errors with user-friendly message.

    Args:
        error: The original exception.
        masked_key: The masked API key for logging.

    Returns:
        A CalendarAPIError with a user-friendly message.
    """
    if "expired" in str(error).lower():
        msg = "API key has expired. Please renew your Gemini API key."
    else:
        msg = "API key is invalid. Please check your Gemini API key."

    logger.error("API key error (%s): %s", masked_key, error)
    return CalendarAPIError(msg)


class GeminiCompletionService:
    """Completion service backed by Google's Gemini structured output."""

    def __init__(self, api_key: str, config: APIConfig = API_CONFIG):
        """Initialize the client with the given API key.

        Args:
            api_key: The Gemini API key.
            config: Generation settings.
        """
        # Import genai here for lazy loading
        import google.generativeai as genai
        self.genai = genai
        self.api_key_masked = mask_key(api_key)
        self.config = config

        self.genai.configure(api_key=api_key)

    def _generation_config(self, schema: Dict) -> Dict:
        return {
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "top_k": self.config.top_k,
            "max_output_tokens": self.config.max_output_tokens,
            "response_mime_type": "application/json",
            "response_schema": schema,
        }

    async def complete(
        self,
        system_prompt: str,
        text: str,
        schema: Dict,
        model: Optional[str] = None,
    ) -> CompletionResult:
        """Send the text to Gemini and return its structured answer.

        Raises:
            CalendarAPIError: If the API key is invalid or expired.
        """
        model_name = model or self.config.model_name
        generative_model = self.genai.GenerativeModel(
            model_name=model_name,
            generation_config=self._generation_config(schema),
            system_instruction=system_prompt,
        )
        logger.debug("Requesting extraction from %s (%d chars)", model_name, len(text))

        try:
            response = await generative_model.generate_content_async(text)
        except Exception as e:
            if is_api_key_error(e):
                raise wrap_api_key_error(e, self.api_key_masked) from e
            raise

        refusal = self._refusal_reason(response)
        if refusal:
            logger.warning("Completion refused: %s", refusal)
            return CompletionResult(refusal=refusal)

        response_text = self._extract_text(response)
        logger.debug("Raw API Response: %s", response_text)
        return CompletionResult(payload=response_text or None)

    @staticmethod
    def _refusal_reason(response) -> Optional[str]:
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        if block_reason:
            return f"prompt blocked ({getattr(block_reason, 'name', block_reason)})"

        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        finish_reason = getattr(candidates[0], "finish_reason", None)
        name = getattr(finish_reason, "name", str(finish_reason))
        if name in REFUSAL_FINISH_REASONS:
            return f"response blocked ({name})"
        return None

    @staticmethod
    def _extract_text(response) -> Optional[str]:
        """Extract text from API response.

        Args:
            response: The API response.

        Returns:
            The extracted text, or None if there is none.
        """
        try:
            return response.text
        except (AttributeError, ValueError) as e:
            logger.debug("Response has no quick text accessor: %s", e)

        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        text = "".join(getattr(part, "text", "") for part in parts)
        return text or None
