"""Reply generator wrapping the chat model behind a never-raising call."""
import os
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from langchain.chat_models import init_chat_model
from langchain_core.messages import HumanMessage

logger = logging.getLogger(__name__)

CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "45"))

TIMEOUT_REASON = "The assistant took too long to respond. Please try again later."
OVERLOADED_REASON = "The AI service is overloaded right now. Please try again later."
EMPTY_REASON = "The assistant returned an empty response."
NO_INPUT_REASON = "There was no text to reply to."


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a single generation attempt."""
    success: bool
    content: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, content: str) -> "GenerationResult":
        return cls(success=True, content=content)

    @classmethod
    def failed(cls, reason: str) -> "GenerationResult":
        return cls(success=False, reason=reason)


def _describe_error(error: Exception) -> str:
    """Turn a provider or transport error into a displayable reason."""
    status_code = getattr(error, "status_code", None)
    if status_code in (429, 503) or "ratelimit" in type(error).__name__.lower():
        return OVERLOADED_REASON
    return f"The assistant could not reply ({type(error).__name__})."


def _extract_text(response) -> str:
    """Pull plain text out of a chat model response."""
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        # Multi-part responses carry text blocks as dicts or plain strings
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts).strip()
    raise TypeError(f"Unexpected response content: {type(content).__name__}")


class ReplyGenerator:
    """
    Generate assistant replies with one bounded chat model call.

    No retry is attempted; every failure mode comes back as a failed
    GenerationResult carrying a reason that can be shown to the user.
    """

    def __init__(self, model_name: str = CHAT_MODEL, timeout: float = GENERATION_TIMEOUT_SECONDS, model=None):
        self.model_name = model_name
        self.timeout = timeout
        self._model = model

    def _get_model(self):
        # Built lazily so missing credentials surface as a failed result
        if self._model is None:
            self._model = init_chat_model(self.model_name)
        return self._model

    async def generate(self, text: Optional[str]) -> GenerationResult:
        """Generate a reply for the given text."""
        if not text or not text.strip():
            return GenerationResult.failed(NO_INPUT_REASON)

        try:
            model = self._get_model()
            response = await asyncio.wait_for(
                model.ainvoke([HumanMessage(content=text)]),
                timeout=self.timeout
            )
            content = _extract_text(response)
        except asyncio.TimeoutError:
            logger.warning(f"Generation timed out after {self.timeout}s")
            return GenerationResult.failed(TIMEOUT_REASON)
        except Exception as e:
            logger.warning(f"Generation failed: {type(e).__name__}: {e}")
            return GenerationResult.failed(_describe_error(e))

        if not content:
            return GenerationResult.failed(EMPTY_REASON)

        return GenerationResult.ok(content)
