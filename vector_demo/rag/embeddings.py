"""
Embedding provider backed by an Azure OpenAI deployment.
"""

import asyncio
import logging
from typing import List, Optional, Protocol

from langchain_openai import AzureOpenAIEmbeddings

from vector_demo.config import Settings
from vector_demo.errors import EmbeddingError

logger = logging.getLogger(__name__)


class TextEmbedder(Protocol):
    """Anything that turns text into a fixed length vector."""

    dimensions: int

    async def embed(self, text: str) -> List[float]:
        ...


class Embedder:
    """Async embedding calls with a timeout and a dimension check.

    Text is sent exactly as given: the client is told not to split long
    inputs, so oversized text fails at the provider instead of being
    silently chunked.
    """

    def __init__(
        self,
        embeddings: AzureOpenAIEmbeddings,
        dimensions: int,
        timeout: Optional[float] = None,
    ):
        self._embeddings = embeddings
        self.dimensions = dimensions
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "Embedder":
        embeddings = AzureOpenAIEmbeddings(
            azure_deployment=settings.embedding_deployment,
            azure_endpoint=settings.openai_endpoint,
            api_key=settings.openai_api_key,
            openai_api_version=settings.openai_api_version,
            check_embedding_ctx_length=False,
        )
        return cls(embeddings, settings.embedding_dimensions, settings.request_timeout)

    async def embed(self, text: str) -> List[float]:
        try:
            vector = await asyncio.wait_for(self._embeddings.aembed_query(text), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise EmbeddingError(f"Embedding request timed out after {self.timeout}s") from e
        except Exception as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if len(vector) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
            )
        logger.debug("Embedded %d characters", len(text))
        return [float(value) for value in vector]
