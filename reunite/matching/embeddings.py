"""
Embedding provider adapter.

Wraps a single OpenAI-compatible ``POST /embeddings`` round trip. Failures of
any kind surface as ``ProviderError``; retrying is left to the caller.
"""

from typing import Optional

import httpx

from reunite.config import Settings
from reunite.errors import ProviderError
from reunite.utils.logger import get_logger

logger = get_logger(__name__)


class EmbeddingClient:
    """
    Async client for a text-embedding endpoint.

    Usage:
        async with EmbeddingClient.from_settings(settings) as client:
            vector = await client.embed("blue backpack library")
    """

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        model: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = httpx.Timeout(timeout, connect=5.0)
        self._client = http_client
        self._owns_client = http_client is None
        self._log = logger.bind(provider=api_url, model=model)

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None
    ) -> "EmbeddingClient":
        return cls(
            api_url=settings.embedding_api_url,
            api_key=settings.embedding_api_key,
            model=settings.embedding_model,
            timeout=settings.embedding_timeout,
            http_client=http_client,
        )

    async def __aenter__(self) -> "EmbeddingClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def embed(self, text: str) -> list[float]:
        """
        Fetch the embedding vector for ``text``.

        Raises:
            ProviderError: transport failure, non-2xx status or malformed body
        """
        try:
            response = await self.client.post(
                self.api_url,
                json={"model": self.model, "input": text},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            self._log.error("embedding_request_failed", error=str(e))
            raise ProviderError(
                "Embedding provider unreachable",
                {"error": str(e)},
            ) from e

        if not response.is_success:
            self._log.error(
                "embedding_request_rejected",
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise ProviderError(
                f"Embedding provider returned HTTP {response.status_code}",
                {"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError("Embedding provider returned invalid JSON") from e

        return self._parse_vector(payload)

    def _parse_vector(self, payload) -> list[float]:
        try:
            vector = payload["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError):
            raise ProviderError(
                "Embedding response is missing data[0].embedding",
                {"keys": sorted(payload) if isinstance(payload, dict) else None},
            )

        if not isinstance(vector, list) or not vector:
            raise ProviderError("Embedding vector is empty or not a list")

        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in vector):
            raise ProviderError("Embedding vector contains non-numeric values")

        return [float(v) for v in vector]
