"""
Search index operations for the demo.
"""
from vector_demo.rag.document_store import (
    DocumentEnricher,
    EnrichmentBatch,
    index_documents,
    load_documents,
)
from vector_demo.rag.embeddings import Embedder
from vector_demo.rag.models import (
    Answer,
    Caption,
    QuerySpec,
    SearchHit,
    SearchOutcome,
    SearchPage,
    SearchResult,
    SemanticOptions,
)
from vector_demo.rag.retrieval import (
    STRATEGIES,
    SearchMode,
    semantic_hybrid_search,
    simple_hybrid_search,
    single_vector_search,
    single_vector_search_with_filter,
)
from vector_demo.rag.schema import build_schema
from vector_demo.rag.vector_store import SearchIndexGateway

__all__ = [
    'build_schema',
    'load_documents',
    'index_documents',
    'DocumentEnricher',
    'EnrichmentBatch',
    'Embedder',
    'SearchIndexGateway',
    'single_vector_search',
    'single_vector_search_with_filter',
    'simple_hybrid_search',
    'semantic_hybrid_search',
    'SearchMode',
    'STRATEGIES',
    'QuerySpec',
    'SemanticOptions',
    'SearchHit',
    'SearchPage',
    'SearchResult',
    'SearchOutcome',
    'Caption',
    'Answer',
]
