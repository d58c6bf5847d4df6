"""Chat orchestration: request parsing, retrieval, generation and logging."""
import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError
import structlog

from legalqa import config
from legalqa.db import ConversationLog
from legalqa.exceptions import RequestValidationError
from legalqa.generator import Generator
from legalqa.rag.prompt import build_prompt
from legalqa.rag.retriever import Retriever

logger = structlog.get_logger()


class Part(BaseModel):
    text: str = ""


class Message(BaseModel):
    role: str
    parts: List[Part] = Field(default_factory=list)


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""

    model_config = ConfigDict(populate_by_name=True)

    conversation_history: List[Message] = Field(alias="conversationHistory")
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    @classmethod
    def parse(cls, data: Any) -> "ChatRequest":
        """Validate a decoded JSON body.

        Raises:
            RequestValidationError: If the body is missing or malformed
        """
        if not isinstance(data, dict) or "conversationHistory" not in data:
            raise RequestValidationError("Missing 'conversationHistory' in request body")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning("chat_request_invalid", errors=e.error_count())
            raise RequestValidationError(
                "Malformed 'conversationHistory' in request body",
                details=str(e),
            ) from e


@dataclass
class ChatAnswer:
    text: str
    session_id: str
    sources: List[str]

    def to_response(self) -> Dict[str, Any]:
        """Mirror the Gemini response envelope."""
        return {"candidates": [{"content": {"parts": [{"text": self.text}]}}]}


def extract_query(request: ChatRequest) -> str:
    """Return the text of the last user message.

    Raises:
        RequestValidationError: If there is no usable user message
    """
    user_messages = [m for m in request.conversation_history if m.role == "user"]
    if not user_messages or not user_messages[-1].parts:
        raise RequestValidationError("No user message in conversation history")

    query = user_messages[-1].parts[0].text.strip()

    if not query:
        raise RequestValidationError("Message cannot be empty")

    if len(query) > config.MAX_MESSAGE_CHARS:
        raise RequestValidationError(
            f"Message too long (max {config.MAX_MESSAGE_CHARS} characters)"
        )

    return query


def to_gemini_contents(request: ChatRequest) -> List[Dict[str, Any]]:
    """Convert the conversation history to Gemini ``contents``."""
    return [
        {
            "role": "model" if message.role in ("model", "assistant") else "user",
            "parts": [{"text": part.text} for part in message.parts],
        }
        for message in request.conversation_history
        if message.parts
    ]


class ChatService:
    """Answers chat requests, with or without retrieval."""

    def __init__(
        self,
        generator: Generator,
        retriever: Optional[Retriever] = None,
        conversation_log: Optional[ConversationLog] = None,
    ):
        """Initialize the chat service.

        Args:
            generator: Generation capability
            retriever: Retriever for grounded answers; None answers from history alone
            conversation_log: Optional write-only exchange log
        """
        self.generator = generator
        self.retriever = retriever
        self.conversation_log = conversation_log

    @property
    def uses_retrieval(self) -> bool:
        return self.retriever is not None

    async def answer(self, request: ChatRequest) -> ChatAnswer:
        """Produce an answer for the last user message.

        Raises:
            RequestValidationError: If the request holds no usable query
            NotReadyError: If retrieval is enabled and the index isn't published
            UpstreamError: If embedding or generation fails
        """
        query = extract_query(request)
        session_id = request.session_id or str(uuid.uuid4())

        logger.info(
            "chat_request_received",
            session_id=session_id,
            message_length=len(query),
            history_length=len(request.conversation_history),
            use_rag=self.uses_retrieval,
        )

        sources: List[str] = []

        if self.retriever is not None:
            results = await self.retriever.retrieve(query)
            sources = [result.source for result in results]
            prompt = build_prompt([result.chunk.text for result in results], query)
            text = await self.generator.generate(prompt)
        else:
            text = await self.generator.generate_chat(to_gemini_contents(request))

        logger.info(
            "chat_response_generated",
            session_id=session_id,
            response_length=len(text),
            source_count=len(sources),
        )

        if self.conversation_log is not None:
            await asyncio.to_thread(
                self.conversation_log.log_exchange, query, text, session_id
            )

        return ChatAnswer(text=text, session_id=session_id, sources=sources)
