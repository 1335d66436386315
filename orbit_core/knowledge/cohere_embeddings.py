"""
Cohere Embeddings Service.

Provides text embedding generation using Cohere's embed-v3 models
with automatic retries and batch processing. Implements the
EmbeddingProvider protocol used by the long-term memory tier.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import cohere
import structlog
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from orbit_core.core.exceptions import EmbeddingUnavailableError
from orbit_core.knowledge.embeddings import cosine_similarity, preprocess_text

logger = structlog.get_logger(__name__)

# Thread pool for sync Cohere client
_executor = ThreadPoolExecutor(max_workers=4)


def _is_retryable(exception: BaseException) -> bool:
    """Check if exception should trigger retry."""
    error_str = str(exception).lower()
    return any(keyword in error_str for keyword in ["rate", "limit", "timeout", "unavailable"])


class CohereEmbeddingsService:
    """
    Cohere embeddings provider.

    Every failure that survives the retries is raised as
    EmbeddingUnavailableError so the vector store can fall back to lexical
    scoring.

    Usage:
        service = CohereEmbeddingsService(api_key="...")

        vector = await service.embed("Lunch specials every Friday")
        vectors = await service.embed_batch(["Excellent pizza", "Slow delivery"])
        score = service.similarity(vectors[0], vectors[1])
    """

    name = "cohere"
    MAX_BATCH_SIZE = 96  # Cohere limit per request
    INPUT_TYPE_DOCUMENT = "search_document"
    INPUT_TYPE_QUERY = "search_query"

    def __init__(
        self,
        api_key: str,
        model: str = "embed-english-v3.0",
        client: cohere.ClientV2 | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client = client

        logger.info("cohere_embeddings_initialized", model=self._model)

    @property
    def model(self) -> str:
        return self._model

    @property
    def client(self) -> cohere.ClientV2:
        """Get or create the Cohere client."""
        if self._client is None:
            self._client = cohere.ClientV2(api_key=self._api_key)
        return self._client

    def _embed_sync(
        self,
        texts: list[str],
        input_type: str = INPUT_TYPE_DOCUMENT,
    ) -> list[list[float]]:
        """Synchronous embedding call."""
        response = self.client.embed(
            model=self._model,
            texts=texts,
            input_type=input_type,
            embedding_types=["float"],
        )
        return response.embeddings.float_

    @retry(
        retry=retry_if_exception(_is_retryable),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        stop=stop_after_attempt(5),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "cohere_retry",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else 0,
        ),
    )
    async def _embed_request(
        self,
        texts: list[str],
        input_type: str = INPUT_TYPE_DOCUMENT,
    ) -> list[list[float]]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            _executor,
            lambda: self._embed_sync(texts, input_type),
        )

    async def embed(self, text: str, input_type: str = INPUT_TYPE_DOCUMENT) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed.
            input_type: Either "search_document" (for storing) or
                       "search_query" (for searching).

        Raises:
            ValueError: If the text is empty.
            EmbeddingUnavailableError: If Cohere could not produce a vector.
        """
        cleaned = preprocess_text(text)
        if not cleaned:
            raise ValueError("Text cannot be empty")

        try:
            embeddings = await self._embed_request([cleaned], input_type)
        except Exception as e:
            logger.warning("cohere_embedding_failed", error=str(e), text_length=len(text))
            raise EmbeddingUnavailableError(self.name, str(e)) from e

        embedding = embeddings[0]
        logger.debug(
            "cohere_embedding_generated",
            text_length=len(text),
            dimension=len(embedding),
        )
        return embedding

    async def embed_query(self, query: str) -> list[float]:
        """Embed a search query (input_type="search_query")."""
        return await self.embed(query, input_type=self.INPUT_TYPE_QUERY)

    async def embed_batch(
        self,
        texts: list[str],
        batch_size: int = MAX_BATCH_SIZE,
        input_type: str = INPUT_TYPE_DOCUMENT,
    ) -> list[list[float]]:
        """
        Generate embeddings for multiple texts with automatic batching.

        Returns:
            Embedding vectors in the same order as the input.

        Raises:
            ValueError: If every text is empty.
            EmbeddingUnavailableError: If any batch fails after retries.
        """
        if not texts:
            return []

        cleaned = [preprocess_text(text) for text in texts]
        if not any(cleaned):
            raise ValueError("All texts are empty")

        effective_batch_size = min(batch_size, self.MAX_BATCH_SIZE)
        result: list[list[float]] = []

        for start in range(0, len(cleaned), effective_batch_size):
            batch = cleaned[start : start + effective_batch_size]
            logger.debug(
                "cohere_embedding_batch_processing",
                batch_num=start // effective_batch_size + 1,
                batch_size=len(batch),
            )
            try:
                result.extend(await self._embed_request(batch, input_type))
            except Exception as e:
                raise EmbeddingUnavailableError(
                    self.name, str(e), {"batch_start": start}
                ) from e

        logger.info("cohere_embedding_batch_completed", total_texts=len(texts))
        return result

    def similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)
