"""Main Quart application for the legal document assistant."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from hypercorn.asyncio import serve as hypercorn_serve
from hypercorn.config import Config as HypercornConfig
from quart import Quart, request, jsonify
from quart_cors import cors
import structlog

from legalqa import config
from legalqa.chat import ChatRequest, ChatService
from legalqa.db import ConversationLog
from legalqa.exceptions import LegalQAError, NotReadyError, RequestValidationError
from legalqa.generator import GeminiGenerator
from legalqa.rag.embedder import GeminiEmbedder
from legalqa.rag.ingest import IngestPipeline
from legalqa.rag.retriever import Retriever
from legalqa.rag.store_faiss import IndexHolder


def configure_logging() -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(format="%(message)s", level=config.LOG_LEVEL.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


configure_logging()

logger = structlog.get_logger()


def _build_conversation_log() -> Optional[ConversationLog]:
    if not config.CONVERSATION_DB_PATH:
        return None

    conversation_log = ConversationLog(config.CONVERSATION_DB_PATH)
    try:
        conversation_log.init_database()
    except Exception as e:
        # The log is optional; serve without it
        logger.error("conversation_log_disabled", error=str(e))
        return None
    return conversation_log


async def _build_index(pipeline: IngestPipeline, holder: IndexHolder) -> None:
    try:
        stats = await pipeline.ingest_into(holder)
        logger.info("index_ready", **stats)
    except Exception as e:
        # The holder stays not-ready and POST /api/chat keeps answering 503
        logger.error("index_build_failed", error=str(e), error_type=type(e).__name__)


def create_app(
    chat_service: Optional[ChatService] = None,
    holder: Optional[IndexHolder] = None,
    ingest_pipeline: Optional[IngestPipeline] = None,
    expose_error_details: Optional[bool] = None,
) -> Quart:
    """Create the Quart application.

    Args:
        chat_service: Chat service (default: Gemini-backed, per config.RAG_ENABLED)
        holder: Vector index holder shared with the retriever
        ingest_pipeline: Pipeline run once in the background after startup
        expose_error_details: Include internal error details in 500 responses
    """
    app = Quart(__name__)
    app = cors(
        app,
        allow_origin=config.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    holder = holder or IndexHolder()
    if expose_error_details is None:
        expose_error_details = config.EXPOSE_ERROR_DETAILS

    if chat_service is None:
        embedder = GeminiEmbedder()
        retriever = Retriever(embedder, holder) if config.RAG_ENABLED else None
        chat_service = ChatService(
            generator=GeminiGenerator(),
            retriever=retriever,
            conversation_log=_build_conversation_log(),
        )
        if retriever is not None and ingest_pipeline is None:
            ingest_pipeline = IngestPipeline(embedder)

    def error_response(error: LegalQAError):
        body = {
            "error": error.message
            if isinstance(error, RequestValidationError)
            else error.public_message
        }
        if expose_error_details and error.details:
            body["details"] = error.details
        return jsonify(body), error.status_code

    @app.before_serving
    async def start_indexing():
        """Build the index in the background while the server listens."""
        if ingest_pipeline is None:
            logger.info("index_build_skipped", rag_enabled=chat_service.uses_retrieval)
            return
        app.add_background_task(_build_index, ingest_pipeline, holder)

    @app.route("/api/chat", methods=["GET"])
    async def chat_status():
        """Health probe, independent of index state."""
        return jsonify({
            "status": "active",
            "message": "Backend çalışıyor. POST istekleri bekleniyor.",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }), 200

    @app.route("/api/chat", methods=["POST"])
    async def chat():
        """Answer the last user message of a conversation.

        Expects JSON body:
        {
            "conversationHistory": [{"role": "user", "parts": [{"text": "..."}]}],
            "sessionId": "optional-session-id"
        }

        Returns JSON:
        {
            "candidates": [{"content": {"parts": [{"text": "..."}]}}]
        }
        """
        try:
            data = await request.get_json(silent=True)
            chat_request = ChatRequest.parse(data)
            answer = await chat_service.answer(chat_request)
            return jsonify(answer.to_response()), 200

        except RequestValidationError as e:
            logger.warning("chat_request_rejected", error=e.message)
            return error_response(e)

        except NotReadyError as e:
            logger.warning("chat_request_before_index_ready", index_state=holder.state)
            return error_response(e)

        except LegalQAError as e:
            logger.error(
                "chat_endpoint_error",
                error=e.message,
                error_type=type(e).__name__,
            )
            return error_response(e)

        except Exception as e:
            logger.error("chat_endpoint_error", error=str(e), error_type=type(e).__name__)
            return error_response(LegalQAError(details=str(e)))

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check if the vector index is published."""
        if not chat_service.uses_retrieval:
            return jsonify({"status": "healthy", "rag_enabled": False}), 200

        checks = {
            "status": "healthy" if holder.is_ready else "unhealthy",
            "rag_enabled": True,
            "index": holder.get_stats(),
        }
        return jsonify(checks), 200 if holder.is_ready else 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    async def method_not_allowed(error):
        """Handle 405 errors."""
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    async def internal_error(error):
        """Handle 500 errors."""
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


app = create_app()


def serve() -> None:
    """Run the application under Hypercorn."""
    hypercorn_config = HypercornConfig()
    hypercorn_config.bind = [f"{config.HOST}:{config.PORT}"]

    logger.info("server_starting", host=config.HOST, port=config.PORT)
    asyncio.run(hypercorn_serve(app, hypercorn_config))


if __name__ == "__main__":
    serve()
