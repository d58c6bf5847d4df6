"""Generation capability wrapping the Gemini generateContent endpoint."""
from typing import Any, Dict, List, Protocol, Sequence
import structlog

from legalqa import config
from legalqa.exceptions import UpstreamError
from legalqa.llm_client import GeminiClient, gemini_client
from legalqa.rag.prompt import build_system_instruction

logger = structlog.get_logger()


class Generator(Protocol):
    """Produces answer text from a prompt or a conversation."""

    async def generate(self, prompt: str) -> str:
        ...

    async def generate_chat(self, history: Sequence[Dict[str, Any]]) -> str:
        ...


class GeminiGenerator:
    """Generator backed by a Gemini chat model."""

    def __init__(
        self,
        client: GeminiClient = None,
        model: str = None,
        max_output_tokens: int = None,
    ):
        self.client = client or gemini_client
        self.model = model or config.CHAT_MODEL
        self.max_output_tokens = max_output_tokens or config.MAX_OUTPUT_TOKENS

    async def generate(self, prompt: str) -> str:
        """Generate an answer for a single assembled prompt."""
        contents = [{"role": "user", "parts": [{"text": prompt}]}]
        return await self._generate(contents)

    async def generate_chat(self, history: Sequence[Dict[str, Any]]) -> str:
        """Generate the next turn of a conversation.

        Args:
            history: Gemini-style contents ending with the user's message
        """
        return await self._generate(list(history), system_instruction=build_system_instruction())

    async def _generate(
        self, contents: List[Dict[str, Any]], system_instruction: str = None
    ) -> str:
        data = await self.client.generate_content(
            contents,
            model=self.model,
            system_instruction=system_instruction,
            max_output_tokens=self.max_output_tokens,
        )
        return extract_text(data)


def extract_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate.

    Raises:
        UpstreamError: If the response holds no usable text
    """
    candidates = data.get("candidates") or []
    if not candidates:
        block_reason = data.get("promptFeedback", {}).get("blockReason")
        logger.error("gemini_empty_candidates", block_reason=block_reason)
        raise UpstreamError("Gemini returned no candidates", details=block_reason)

    parts = candidates[0].get("content", {}).get("parts", [])
    text = "".join(part.get("text", "") for part in parts)

    if not text:
        finish_reason = candidates[0].get("finishReason")
        logger.error("gemini_empty_response", finish_reason=finish_reason)
        raise UpstreamError("Empty response from LLM", details=finish_reason)

    return text
