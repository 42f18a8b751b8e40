"""
Gateway to an Azure AI Search service.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError, HttpResponseError
from azure.search.documents.aio import SearchClient
from azure.search.documents.indexes.aio import SearchIndexClient
from azure.search.documents.indexes.models import SearchIndex
from azure.search.documents.models import VectorizedQuery

from vector_demo.config import Settings
from vector_demo.errors import (
    BackendError,
    InvalidFilterError,
    SemanticUnavailableError,
)
from vector_demo.rag.models import Answer, Caption, QuerySpec, SearchHit, SearchPage

logger = logging.getLogger(__name__)

SEMANTIC_UNAVAILABLE_CODES = {
    "SemanticQueriesNotAvailable",
    "FeatureNotSupportedInService",
}


def _error_code(error: HttpResponseError) -> Optional[str]:
    odata = getattr(error, "error", None)
    return getattr(odata, "code", None)


def _error_message(error: HttpResponseError) -> str:
    odata = getattr(error, "error", None)
    return getattr(odata, "message", None) or error.message or str(error)


def translate_error(error: HttpResponseError, spec: Optional[QuerySpec] = None) -> BackendError:
    """Map a service error to the demo's error taxonomy."""
    status = error.status_code
    code = _error_code(error)
    message = _error_message(error)
    lowered = message.lower()

    if spec is not None and spec.filter and status == 400 and "$filter" in lowered:
        return InvalidFilterError(spec.filter, message, status_code=status, error_code=code)
    if spec is not None and spec.semantic is not None and (
        code in SEMANTIC_UNAVAILABLE_CODES or "semantic search is not enabled" in lowered
    ):
        return SemanticUnavailableError(message, status_code=status, error_code=code)
    return BackendError(message, status_code=status, error_code=code)


def _to_caption(raw: Any) -> Caption:
    if isinstance(raw, dict):
        return Caption(text=raw.get("text"), highlights=raw.get("highlights"))
    return Caption(text=getattr(raw, "text", None), highlights=getattr(raw, "highlights", None))


def _to_answer(raw: Any) -> Answer:
    if isinstance(raw, dict):
        return Answer(**{key: raw.get(key) for key in ("key", "text", "highlights", "score")})
    return Answer(
        key=getattr(raw, "key", None),
        text=getattr(raw, "text", None),
        highlights=getattr(raw, "highlights", None),
        score=getattr(raw, "score", None),
    )


def to_hit(raw: Dict[str, Any]) -> SearchHit:
    """Split a raw result into document fields and ``@search.*`` annotations."""
    document = {key: value for key, value in raw.items() if not key.startswith("@search.")}
    return SearchHit(
        document=document,
        score=float(raw.get("@search.score") or 0.0),
        reranker_score=raw.get("@search.reranker_score"),
        captions=[_to_caption(caption) for caption in raw.get("@search.captions") or []],
    )


def search_arguments(spec: QuerySpec) -> Dict[str, Any]:
    """Keyword arguments for ``SearchClient.search`` built from a query spec."""
    arguments: Dict[str, Any] = {
        "search_text": spec.search_text,
        "select": spec.select,
    }
    if spec.vector:
        arguments["vector_queries"] = [
            VectorizedQuery(
                vector=spec.vector,
                k_nearest_neighbors=spec.k_nearest_neighbors,
                fields=",".join(spec.vector_fields),
            )
        ]
    if spec.top is not None:
        arguments["top"] = spec.top
    if spec.filter:
        arguments["filter"] = spec.filter
    if spec.semantic is not None:
        semantic = spec.semantic
        arguments.update(
            query_type="semantic",
            semantic_configuration_name=semantic.configuration_name,
            query_caption=semantic.query_caption,
            query_caption_highlight_enabled=semantic.caption_highlight,
            query_answer=semantic.query_answer,
        )
        if semantic.query_language:
            arguments["query_language"] = semantic.query_language
    return arguments


class SearchIndexGateway:
    """Schema management, uploads and queries against one index.

    Every call is bounded by ``timeout`` and service failures surface as
    :class:`~vector_demo.errors.BackendError` with the service's detail.
    """

    def __init__(
        self,
        index_client: SearchIndexClient,
        search_client: SearchClient,
        timeout: Optional[float] = None,
    ):
        self._index_client = index_client
        self._search_client = search_client
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchIndexGateway":
        credential = AzureKeyCredential(settings.search_key)
        index_client = SearchIndexClient(endpoint=settings.search_endpoint, credential=credential)
        search_client = SearchClient(
            endpoint=settings.search_endpoint,
            index_name=settings.index_name,
            credential=credential,
        )
        return cls(index_client, search_client, settings.request_timeout)

    async def close(self) -> None:
        await self._search_client.close()
        await self._index_client.close()

    async def __aenter__(self) -> "SearchIndexGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _bounded(self, awaitable, action: str):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise BackendError(f"{action} timed out after {self.timeout}s") from e
        except HttpResponseError:
            raise
        except AzureError as e:
            # connection and transport faults carry no status code
            logger.error("%s failed: %s", action, e)
            raise BackendError(f"Could not reach the search service ({action.lower()}): {e}") from e

    async def create_or_update_index(self, index: SearchIndex) -> SearchIndex:
        try:
            result = await self._bounded(self._index_client.create_or_update_index(index), "Index update")
        except HttpResponseError as e:
            logger.error("Index %s rejected: %s", index.name, _error_message(e))
            raise translate_error(e) from e
        logger.info("Index %s created or updated", index.name)
        return result

    async def upsert(self, documents: Sequence[Dict[str, Any]]) -> int:
        """Merge-or-upload documents; returns the number stored."""
        if not documents:
            return 0
        try:
            results = await self._bounded(
                self._search_client.merge_or_upload_documents(documents=list(documents)),
                "Upload",
            )
        except HttpResponseError as e:
            logger.error("Upload rejected: %s", _error_message(e))
            raise translate_error(e) from e

        failed = [result for result in results if not result.succeeded]
        if failed:
            details = "; ".join(f"{result.key}: {result.error_message}" for result in failed)
            logger.error("%d of %d documents failed to upload", len(failed), len(results))
            raise BackendError(f"Upload failed for {len(failed)} documents: {details}")
        logger.info("Uploaded %d documents", len(results))
        return len(results)

    async def get_document(self, key: str) -> Dict[str, Any]:
        try:
            return await self._bounded(self._search_client.get_document(key=key), "Document lookup")
        except HttpResponseError as e:
            raise translate_error(e) from e

    async def _collect(self, spec: QuerySpec) -> SearchPage:
        results = await self._search_client.search(**search_arguments(spec))
        answers = await results.get_answers() if spec.semantic is not None else None
        hits: List[SearchHit] = [to_hit(raw) async for raw in results]
        return SearchPage(
            hits=hits,
            answers=[_to_answer(answer) for answer in answers] if answers is not None else None,
        )

    async def search(self, spec: QuerySpec) -> SearchPage:
        try:
            return await self._bounded(self._collect(spec), "Search")
        except HttpResponseError as e:
            error = translate_error(e, spec)
            logger.error("Search rejected (%s): %s", type(error).__name__, error)
            raise error from e
