"""
Similarity Model Client

The model is reached through an OpenAI-compatible chat API, so we use the
openai library. By default this points at Gemini's OpenAI endpoint; any
compatible provider works by changing AI_BASE_URL / AI_MODEL.

AI is used ONLY for the plagiarism similarity check. The reply is parsed
into a score and stored; the relational store stays the source of truth.
"""
import logging

from openai import OpenAI

from projexa.core.config import get_settings
from projexa.core.errors import SimilarityCheckError

logger = logging.getLogger(__name__)

settings = get_settings()


class AIClient:
    """
    Thin wrapper around the chat completion call.
    """

    def __init__(self):
        self.client = OpenAI(
            api_key=settings.ai_api_key or "missing-key",
            base_url=settings.ai_base_url
        )
        self.model = settings.ai_model

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 2000) -> str:
        """
        Call the model once and return the raw text reply.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content}
            ],
            max_tokens=max_tokens,
            temperature=0.1  # Low temp for consistent structured output
        )
        return response.choices[0].message.content or ""

    def complete(self, system_prompt: str, user_content: str, max_tokens: int = 2000) -> str:
        """Call the model, turning any client error into SimilarityCheckError."""
        try:
            return self._call_api(system_prompt, user_content, max_tokens=max_tokens)
        except Exception as e:
            logger.exception("Similarity model call failed")
            raise SimilarityCheckError(f"Failed to check similarity: {e}") from e

    def ping(self) -> bool:
        """Test if the model API is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except Exception as e:
            logger.error("AI connection failed: %s", e)
            return False


# Singleton instance
_ai_client: AIClient = None


def get_ai_client() -> AIClient:
    """Get or create the AI client (singleton pattern)"""
    global _ai_client
    if _ai_client is None:
        _ai_client = AIClient()
    return _ai_client
