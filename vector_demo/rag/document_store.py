"""
Document loading, enrichment with embeddings, and index provisioning.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from vector_demo.errors import ConfigurationError, EmbeddingError, EnrichmentError
from vector_demo.rag.embeddings import TextEmbedder
from vector_demo.utils.constants import Fields

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def load_documents(path: Union[str, Path]) -> List[Document]:
    """Load documents from a JSON file holding an array of objects."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Documents file {path} not found") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Documents file {path} is not valid JSON: {e}") from e

    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ConfigurationError(f"Documents file {path} must contain a JSON array of objects")
    logger.info("Loaded %d documents from %s", len(payload), path)
    return payload


class EnrichmentBatch(BaseModel):
    """Outcome of enriching a batch when failures are collected, not raised."""
    documents: List[Document] = Field(default_factory=list, description="Enriched documents in input order")
    failures: List[EnrichmentError] = Field(default_factory=list, description="One error per failed document")

    model_config = {"arbitrary_types_allowed": True}


def _text(document: Document, field: str) -> str:
    value = document.get(field)
    return "" if value is None else str(value)


class DocumentEnricher:
    """Attach ``titleVector`` and ``contentVector`` to raw documents.

    Embedding calls run concurrently across documents, at most
    ``max_concurrency`` at a time. Output order always follows input order.
    """

    def __init__(self, embedder: TextEmbedder, max_concurrency: int = 4):
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self.embedder = embedder
        self.max_concurrency = max_concurrency

    async def enrich_document(self, document: Document) -> Document:
        document_id = document.get(Fields.ID.value)
        title = _text(document, Fields.TITLE.value)
        content = _text(document, Fields.CONTENT.value)
        if not title.strip():
            raise EnrichmentError(document_id, "missing title")
        if not content.strip():
            raise EnrichmentError(document_id, "missing content")

        try:
            title_vector = await self.embedder.embed(title)
            content_vector = await self.embedder.embed(content)
        except EmbeddingError as e:
            raise EnrichmentError(document_id, str(e)) from e

        for name, vector in ((Fields.TITLE_VECTOR, title_vector), (Fields.CONTENT_VECTOR, content_vector)):
            if len(vector) != self.embedder.dimensions:
                raise EnrichmentError(
                    document_id,
                    f"{name.value} has {len(vector)} dimensions, expected {self.embedder.dimensions}",
                )

        enriched = dict(document)
        enriched[Fields.TITLE_VECTOR.value] = title_vector
        enriched[Fields.CONTENT_VECTOR.value] = content_vector
        return enriched

    async def _enrich_all(self, documents: Sequence[Document]) -> List[Tuple[int, Any]]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def worker(position: int, document: Document) -> Tuple[int, Any]:
            async with semaphore:
                try:
                    return position, await self.enrich_document(document)
                except EnrichmentError as e:
                    logger.warning("Enrichment failed: %s", e)
                    return position, e

        logger.info("Generating embeddings for %d documents", len(documents))
        outcomes = await asyncio.gather(*(worker(i, doc) for i, doc in enumerate(documents)))
        return sorted(outcomes, key=lambda outcome: outcome[0])

    async def enrich(self, documents: Sequence[Document]) -> List[Document]:
        """Enrich every document or raise the first failure in input order."""
        outcomes = await self._enrich_all(documents)
        for _, outcome in outcomes:
            if isinstance(outcome, EnrichmentError):
                raise outcome
        enriched = [outcome for _, outcome in outcomes]
        logger.info("Generated embeddings for %d documents", len(enriched))
        return enriched

    async def enrich_partial(self, documents: Sequence[Document]) -> EnrichmentBatch:
        """Enrich what can be enriched and report the rest."""
        batch = EnrichmentBatch()
        for _, outcome in await self._enrich_all(documents):
            if isinstance(outcome, EnrichmentError):
                batch.failures.append(outcome)
            else:
                batch.documents.append(outcome)
        logger.info(
            "Generated embeddings for %d documents, %d failed",
            len(batch.documents), len(batch.failures),
        )
        return batch


async def index_documents(
    gateway,
    enricher: DocumentEnricher,
    documents: Sequence[Document],
    schema=None,
) -> int:
    """Provision the index and upload enriched documents.

    Nothing is uploaded unless the whole batch enriched successfully, so a
    failed or cancelled run never leaves a partial batch in the index.
    """
    if schema is not None:
        await gateway.create_or_update_index(schema)
    enriched = await enricher.enrich(documents)
    return await gateway.upsert(enriched)

