"""
Retrieval strategies: vector, filtered vector, hybrid and semantic hybrid.

Each strategy embeds the query, shapes one request for the search service
and turns the raw hits into :class:`SearchResult` objects. Ranking and
fusion happen in the service; results keep the order it returned.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Protocol

from vector_demo.errors import SemanticUnavailableError
from vector_demo.rag.embeddings import TextEmbedder
from vector_demo.rag.models import (
    QuerySpec,
    SearchHit,
    SearchOutcome,
    SearchPage,
    SearchResult,
    SemanticOptions,
)
from vector_demo.utils.constants import SEMANTIC_CONFIG_NAME, Fields

logger = logging.getLogger(__name__)


class SearchBackend(Protocol):
    async def search(self, spec: QuerySpec) -> SearchPage:
        ...


class SearchMode(str, Enum):
    VECTOR = "vector"
    FILTERED_VECTOR = "filtered_vector"
    HYBRID = "hybrid"
    SEMANTIC_HYBRID = "semantic_hybrid"


def _pick_caption(hit: SearchHit) -> Optional[str]:
    if not hit.captions:
        return None
    caption = hit.captions[0]
    if caption.highlights:
        return caption.highlights
    return caption.text


def to_result(hit: SearchHit) -> SearchResult:
    document = hit.document
    return SearchResult(
        title=document.get(Fields.TITLE.value),
        content=document.get(Fields.CONTENT.value),
        category=document.get(Fields.CATEGORY.value),
        score=hit.score,
        reranker_score=hit.reranker_score,
        caption=_pick_caption(hit),
    )


async def _run(mode: SearchMode, spec: QuerySpec, backend: SearchBackend) -> SearchOutcome:
    logger.info(
        "%s search: k=%d top=%s filter=%s text=%s",
        mode.value, spec.k_nearest_neighbors, spec.top, bool(spec.filter), bool(spec.search_text),
    )
    page = await backend.search(spec)
    results = [to_result(hit) for hit in page.hits or []]
    return SearchOutcome(mode=mode.value, results=results, answers=page.answers or [])


async def single_vector_search(
    query: str,
    embedder: TextEmbedder,
    backend: SearchBackend,
    k: int = 3,
) -> SearchOutcome:
    """Nearest neighbours of the query embedding over ``contentVector``."""
    vector = await embedder.embed(query)
    spec = QuerySpec(vector=vector, k_nearest_neighbors=k, top=k)
    return await _run(SearchMode.VECTOR, spec, backend)


async def single_vector_search_with_filter(
    query: str,
    embedder: TextEmbedder,
    backend: SearchBackend,
    filter_expression: str,
    k: int = 3,
) -> SearchOutcome:
    """Vector search restricted by a filter expression.

    The expression is passed to the service as is; a malformed one raises
    :class:`~vector_demo.errors.InvalidFilterError`.
    """
    vector = await embedder.embed(query)
    spec = QuerySpec(vector=vector, k_nearest_neighbors=k, top=k, filter=filter_expression)
    return await _run(SearchMode.FILTERED_VECTOR, spec, backend)


async def simple_hybrid_search(
    query: str,
    embedder: TextEmbedder,
    backend: SearchBackend,
    k: int = 3,
    top: int = 10,
) -> SearchOutcome:
    """Lexical and vector search in one request, fused by the service."""
    vector = await embedder.embed(query)
    spec = QuerySpec(search_text=query, vector=vector, k_nearest_neighbors=k, top=top)
    return await _run(SearchMode.HYBRID, spec, backend)


async def semantic_hybrid_search(
    query: str,
    embedder: TextEmbedder,
    backend: SearchBackend,
    k: int = 3,
    top: int = 3,
    configuration_name: str = SEMANTIC_CONFIG_NAME,
    query_language: Optional[str] = None,
) -> SearchOutcome:
    """Hybrid search reranked by the semantic ranker, with captions and answers.

    When the semantic layer is unavailable, or the service hands back no
    result set at all, the outcome is empty and flagged ``degraded``.
    Any other service error propagates.
    """
    vector = await embedder.embed(query)
    spec = QuerySpec(
        search_text=query,
        vector=vector,
        k_nearest_neighbors=k,
        top=top,
        semantic=SemanticOptions(configuration_name=configuration_name, query_language=query_language),
    )
    mode = SearchMode.SEMANTIC_HYBRID
    logger.info("%s search: k=%d top=%s configuration=%s", mode.value, k, top, configuration_name)
    try:
        page = await backend.search(spec)
    except SemanticUnavailableError as e:
        logger.warning("Semantic ranking unavailable, reporting no results: %s", e)
        return SearchOutcome(mode=mode.value, degraded=True, detail=str(e))

    if page is None or page.hits is None:
        logger.warning("Semantic search returned no result set, reporting no results")
        return SearchOutcome(mode=mode.value, degraded=True, detail="no result set returned")

    return SearchOutcome(
        mode=mode.value,
        results=[to_result(hit) for hit in page.hits],
        answers=page.answers or [],
    )


Strategy = Callable[..., Awaitable[SearchOutcome]]

STRATEGIES: Dict[SearchMode, Strategy] = {
    SearchMode.VECTOR: single_vector_search,
    SearchMode.FILTERED_VECTOR: single_vector_search_with_filter,
    SearchMode.HYBRID: simple_hybrid_search,
    SearchMode.SEMANTIC_HYBRID: semantic_hybrid_search,
}

