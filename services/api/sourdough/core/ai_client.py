import logging
from typing import Optional

from google import genai
from google.genai import types

from ..settings import Settings, get_settings

logger = logging.getLogger("sourdough.ai")


class AIClient:
    """Thin wrapper around the google-genai text API.

    In "mock" mode no client is built and callers fall back to canned text.
    """

    _instance = None

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.api_key = settings.gemini_api_key
        self.mode = settings.ai_mode  # "mock" or "gemini"
        self.text_model = settings.gemini_text_model
        self._client: Optional[genai.Client] = None

        if self.mode == "gemini" and self.api_key:
            self._client = genai.Client(api_key=self.api_key)

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def is_mock(self) -> bool:
        return self.mode == "mock"

    def is_available(self) -> bool:
        return self.mode == "gemini" and self._client is not None

    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
    ) -> Optional[str]:
        """Plain-text completion. Returns None when unavailable or on failure."""
        if not self.is_available():
            logger.warning(f"AI is not available (mode={self.mode}), skipping generation")
            return None

        model_id = model or self.text_model
        try:
            response = await self._client.aio.models.generate_content(
                model=model_id,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="text/plain",
                    system_instruction=system_instruction,
                ),
            )
            if not response.text:
                logger.warning("Gemini returned empty response")
                return None
            return response.text
        except Exception as e:
            logger.error(f"Gemini generation failed: {e}")
            return None


def get_ai_client() -> AIClient:
    return AIClient.get_instance()
