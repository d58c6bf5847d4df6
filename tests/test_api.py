"""Tests for the HTTP endpoints."""
import pytest

from legalqa import config
from legalqa.chat import ChatService
from legalqa.exceptions import UpstreamError
from legalqa.main import create_app
from legalqa.rag.ingest import IngestPipeline
from legalqa.rag.prompt import FALLBACK_ANSWER
from legalqa.rag.retriever import Retriever
from legalqa.rag.store_faiss import IndexHolder


def _body(text):
    return {"conversationHistory": [{"role": "user", "parts": [{"text": text}]}]}


def _app(embedder, generator, holder, **kwargs):
    service = ChatService(generator, Retriever(embedder, holder))
    return create_app(chat_service=service, holder=holder, **kwargs)


class FailingGenerator:
    def __init__(self, error):
        self.error = error

    async def generate(self, prompt):
        raise self.error


@pytest.mark.asyncio
async def test_get_chat_is_status_probe(embedder, generator, holder):
    client = _app(embedder, generator, holder).test_client()

    response = await client.get("/api/chat")
    data = await response.get_json()

    assert response.status_code == 200
    assert data["status"] == "active"
    assert data["message"]
    assert data["timestamp"]


@pytest.mark.asyncio
async def test_post_before_index_ready_returns_503(embedder, generator, holder):
    client = _app(embedder, generator, holder).test_client()

    response = await client.post("/api/chat", json=_body("Kira süresi ne kadar?"))
    data = await response.get_json()

    assert response.status_code == 503
    assert data["error"]
    assert "candidates" not in data
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_end_to_end_single_document(embedder, generator, make_index):
    holder = IndexHolder()
    holder.publish(make_index(["Madde 1: Kira süresi bir yıldır."]))
    client = _app(embedder, generator, holder).test_client()

    response = await client.post("/api/chat", json=_body("Kira süresi ne kadar?"))
    data = await response.get_json()

    assert response.status_code == 200
    assert data == {"candidates": [{"content": {"parts": [{"text": generator.answer}]}}]}

    prompt = generator.prompts[0]
    assert FALLBACK_ANSWER in prompt
    assert "Madde 1: Kira süresi bir yıldır." in prompt
    assert "Kira süresi ne kadar?" in prompt


@pytest.mark.asyncio
async def test_missing_conversation_history_returns_400(embedder, generator, ready_holder):
    client = _app(embedder, generator, ready_holder).test_client()

    response = await client.post("/api/chat", json={"message": "Kira süresi?"})
    data = await response.get_json()

    assert response.status_code == 400
    assert data["error"]
    assert "Traceback" not in (await response.get_data(as_text=True))


@pytest.mark.asyncio
async def test_non_json_body_returns_400(embedder, generator, ready_holder):
    client = _app(embedder, generator, ready_holder).test_client()

    response = await client.post(
        "/api/chat", data="Kira süresi?", headers={"Content-Type": "text/plain"}
    )

    assert response.status_code == 400
    assert (await response.get_json())["error"]


@pytest.mark.asyncio
async def test_upstream_failure_hides_details_by_default(embedder, ready_holder):
    generator = FailingGenerator(UpstreamError("Gemini request failed", details="quota exceeded"))
    client = _app(embedder, generator, ready_holder, expose_error_details=False).test_client()

    response = await client.post("/api/chat", json=_body("Kira süresi?"))
    data = await response.get_json()

    assert response.status_code == 500
    assert data == {"error": UpstreamError.public_message}


@pytest.mark.asyncio
async def test_upstream_failure_details_when_enabled(embedder, ready_holder):
    generator = FailingGenerator(UpstreamError("Gemini request failed", details="quota exceeded"))
    client = _app(embedder, generator, ready_holder, expose_error_details=True).test_client()

    response = await client.post("/api/chat", json=_body("Kira süresi?"))
    data = await response.get_json()

    assert response.status_code == 500
    assert data["details"] == "quota exceeded"


@pytest.mark.asyncio
async def test_unexpected_error_returns_generic_500(embedder, ready_holder):
    generator = FailingGenerator(RuntimeError("boom"))
    client = _app(embedder, generator, ready_holder, expose_error_details=False).test_client()

    response = await client.post("/api/chat", json=_body("Kira süresi?"))
    data = await response.get_json()

    assert response.status_code == 500
    assert data["error"]
    assert "boom" not in str(data)


@pytest.mark.asyncio
async def test_cors_headers_for_allowed_origin(embedder, generator, holder):
    client = _app(embedder, generator, holder).test_client()
    origin = config.CORS_ORIGINS[0]

    allowed = await client.get("/api/chat", headers={"Origin": origin})
    denied = await client.get("/api/chat", headers={"Origin": "https://example.com"})

    assert allowed.headers["Access-Control-Allow-Origin"] == origin
    assert "Access-Control-Allow-Origin" not in denied.headers


@pytest.mark.asyncio
async def test_cors_preflight_for_allowed_origin(embedder, generator, holder):
    client = _app(embedder, generator, holder).test_client()
    origin = config.CORS_ORIGINS[0]

    response = await client.options(
        "/api/chat",
        headers={
            "Origin": origin,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == origin
    assert "POST" in response.headers["Access-Control-Allow-Methods"]
    assert "content-type" in response.headers["Access-Control-Allow-Headers"].lower()


@pytest.mark.asyncio
async def test_readiness_follows_index_state(embedder, generator, holder, make_index):
    client = _app(embedder, generator, holder).test_client()

    before = await client.get("/health/ready")
    holder.publish(make_index(["Madde 1: Kira süresi bir yıldır."]))
    after = await client.get("/health/ready")

    assert before.status_code == 503
    assert (await before.get_json())["index"]["state"] == "building"
    assert after.status_code == 200
    assert (await after.get_json())["index"]["chunk_count"] == 1


@pytest.mark.asyncio
async def test_readiness_without_retrieval(generator, holder):
    client = create_app(chat_service=ChatService(generator), holder=holder).test_client()

    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert (await response.get_json())["rag_enabled"] is False


@pytest.mark.asyncio
async def test_liveness_and_unknown_route(embedder, generator, holder):
    client = _app(embedder, generator, holder).test_client()

    live = await client.get("/health/live")
    missing = await client.get("/api/yok")

    assert live.status_code == 200
    assert missing.status_code == 404
    assert (await missing.get_json()) == {"error": "Not found"}


@pytest.mark.asyncio
async def test_index_built_in_background_after_startup(embedder, generator, holder, tmp_path):
    (tmp_path / "kira.txt").write_text("Madde 1: Kira süresi bir yıldır.", encoding="utf-8")
    pipeline = IngestPipeline(embedder, documents_dir=tmp_path)
    service = ChatService(generator, Retriever(embedder, holder))
    app = create_app(chat_service=service, holder=holder, ingest_pipeline=pipeline)

    async with app.test_app():
        pass

    assert holder.is_ready
    assert len(holder.current) == 1


@pytest.mark.asyncio
async def test_failed_background_build_keeps_returning_503(failing_embedder, generator, holder, tmp_path):
    (tmp_path / "kira.txt").write_text("Madde 1: Kira süresi bir yıldır.", encoding="utf-8")
    pipeline = IngestPipeline(failing_embedder, documents_dir=tmp_path)
    service = ChatService(generator, Retriever(failing_embedder, holder))
    app = create_app(chat_service=service, holder=holder, ingest_pipeline=pipeline)

    async with app.test_app():
        pass

    response = await app.test_client().post("/api/chat", json=_body("Kira süresi?"))

    assert holder.state == IndexHolder.FAILED
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_empty_documents_directory_is_never_ready(embedder, generator, holder, tmp_path):
    pipeline = IngestPipeline(embedder, documents_dir=tmp_path)
    service = ChatService(generator, Retriever(embedder, holder))
    app = create_app(chat_service=service, holder=holder, ingest_pipeline=pipeline)

    async with app.test_app():
        pass

    client = app.test_client()
    response = await client.post("/api/chat", json=_body("Kira süresi?"))
    ready = await client.get("/health/ready")

    assert holder.state == IndexHolder.FAILED
    assert response.status_code == 503
    assert generator.prompts == []
    assert ready.status_code == 503
    assert (await ready.get_json())["index"]["error"]
