"""Gemini REST client wrapper with error handling."""
import httpx
from typing import List, Dict, Any, Optional
import structlog

from legalqa import config
from legalqa.exceptions import UpstreamError

logger = structlog.get_logger()


class GeminiClient:
    """Async client for the Gemini generative-language API."""

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Google API key (defaults to config.GOOGLE_API_KEY)
            base_url: API base URL (defaults to config.GEMINI_BASE_URL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key or config.GOOGLE_API_KEY
        self.base_url = (base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise UpstreamError("GOOGLE_API_KEY is not configured")
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/{path}",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "gemini_http_error",
                path=path,
                status_code=e.response.status_code,
                body_preview=e.response.text[:200],
            )
            raise UpstreamError(
                f"Gemini request failed with status {e.response.status_code}",
                details=e.response.text[:500],
            ) from e
        except httpx.HTTPError as e:
            logger.error("gemini_connection_error", path=path, error=str(e))
            raise UpstreamError("Gemini request failed", details=str(e)) from e
        except ValueError as e:
            logger.error("gemini_invalid_json", path=path, error=str(e))
            raise UpstreamError("Gemini returned invalid JSON", details=str(e)) from e

    async def generate_content(
        self,
        contents: List[Dict[str, Any]],
        model: str = None,
        system_instruction: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Send a generateContent request.

        Args:
            contents: List of content dicts with 'role' and 'parts'
            model: Model to use (defaults to config.CHAT_MODEL)
            system_instruction: Optional system instruction text
            max_output_tokens: Output token cap (defaults to config.MAX_OUTPUT_TOKENS)

        Returns:
            Raw response dict with 'candidates'

        Raises:
            UpstreamError: On transport or API errors
        """
        model = model or config.CHAT_MODEL

        payload: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "maxOutputTokens": max_output_tokens or config.MAX_OUTPUT_TOKENS,
            },
        }

        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        logger.info(
            "gemini_generate_request",
            model=model,
            content_count=len(contents),
        )

        data = await self._post(f"models/{model}:generateContent", payload)

        logger.info(
            "gemini_generate_response",
            model=model,
            candidate_count=len(data.get("candidates", [])),
        )

        return data

    async def embed_content(
        self,
        text: str,
        model: str = None,
        task_type: str = "RETRIEVAL_QUERY",
    ) -> List[float]:
        """Generate an embedding for a single text.

        Args:
            text: Text to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)
            task_type: Gemini embedding task type

        Returns:
            Embedding vector

        Raises:
            UpstreamError: On API errors or an empty embedding
        """
        model = model or config.EMBEDDING_MODEL

        payload = {
            "model": f"models/{model}",
            "content": {"parts": [{"text": text}]},
            "taskType": task_type,
        }

        logger.debug("gemini_embedding_request", model=model, text_length=len(text))

        data = await self._post(f"models/{model}:embedContent", payload)
        values = data.get("embedding", {}).get("values", [])

        if not values:
            raise UpstreamError("Empty embedding returned from Gemini")

        logger.debug("gemini_embedding_response", model=model, dimension=len(values))

        return values

    async def batch_embed_contents(
        self,
        texts: List[str],
        model: str = None,
        task_type: str = "RETRIEVAL_DOCUMENT",
    ) -> List[List[float]]:
        """Generate embeddings for several texts in one request.

        Args:
            texts: Texts to embed (at most 100 per request)
            model: Model to use (defaults to config.EMBEDDING_MODEL)
            task_type: Gemini embedding task type

        Returns:
            One embedding vector per input text, in input order

        Raises:
            UpstreamError: On API errors or a malformed response
        """
        if not texts:
            return []

        model = model or config.EMBEDDING_MODEL

        payload = {
            "requests": [
                {
                    "model": f"models/{model}",
                    "content": {"parts": [{"text": text}]},
                    "taskType": task_type,
                }
                for text in texts
            ]
        }

        logger.debug("gemini_batch_embedding_request", model=model, count=len(texts))

        data = await self._post(f"models/{model}:batchEmbedContents", payload)
        embeddings = [item.get("values", []) for item in data.get("embeddings", [])]

        if len(embeddings) != len(texts):
            raise UpstreamError(
                f"Expected {len(texts)} embeddings, got {len(embeddings)}"
            )
        if any(not values for values in embeddings):
            raise UpstreamError("Empty embedding returned from Gemini")

        return embeddings


# Global client instance
gemini_client = GeminiClient()
