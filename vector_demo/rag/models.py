"""
Data models for queries and search results.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from vector_demo.utils.constants import SELECT_FIELDS, Fields


class SemanticOptions(BaseModel):
    """Semantic reranking flags attached to a query."""
    configuration_name: str = Field(..., description="Semantic configuration defined on the index")
    query_language: Optional[str] = Field(None, description="Query language, e.g. en-us")
    query_caption: str = Field(default="extractive", description="Caption extraction mode")
    caption_highlight: bool = Field(default=True, description="Ask for highlighted captions")
    query_answer: str = Field(default="extractive", description="Answer extraction mode")


class QuerySpec(BaseModel):
    """A single request to the search service."""
    search_text: Optional[str] = Field(None, description="Lexical query text, absent for pure vector search")
    vector: Optional[List[float]] = Field(None, description="Query embedding")
    vector_fields: List[str] = Field(default_factory=lambda: [Fields.CONTENT_VECTOR.value],
                                     description="Vector fields searched by similarity")
    k_nearest_neighbors: int = Field(default=3, gt=0, description="Nearest neighbours requested from the vector index")
    top: Optional[int] = Field(None, gt=0, description="Maximum number of results returned")
    filter: Optional[str] = Field(None, description="Filter expression over filterable fields")
    select: List[str] = Field(default_factory=lambda: list(SELECT_FIELDS), description="Fields returned per result")
    semantic: Optional[SemanticOptions] = Field(None, description="Semantic reranking options")

    @model_validator(mode="after")
    def _require_text_or_vector(self) -> "QuerySpec":
        if not self.search_text and not self.vector:
            raise ValueError("A query needs search text, a vector, or both")
        return self


class Caption(BaseModel):
    """Extractive caption returned by the semantic ranker."""
    text: Optional[str] = None
    highlights: Optional[str] = None


class Answer(BaseModel):
    """Query level extractive answer."""
    key: Optional[str] = Field(None, description="Key of the document the answer came from")
    text: Optional[str] = None
    highlights: Optional[str] = None
    score: Optional[float] = None


class SearchHit(BaseModel):
    """A raw result as returned by the search service."""
    document: Dict[str, Any] = Field(default_factory=dict)
    score: float = Field(..., description="Relevance score")
    reranker_score: Optional[float] = Field(None, description="Semantic reranker score")
    captions: List[Caption] = Field(default_factory=list)


class SearchPage(BaseModel):
    """Everything one search call returned.

    ``hits`` is ``None`` when the service produced no result set at all,
    which is different from an empty one.
    """
    hits: Optional[List[SearchHit]] = None
    answers: Optional[List[Answer]] = None


class SearchResult(BaseModel):
    """Search result shaped for presentation."""
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    score: float = Field(..., description="Relevance score reported by the service")
    reranker_score: Optional[float] = Field(None, description="Semantic reranker score, not comparable to score")
    caption: Optional[str] = Field(None, description="Highlighted caption, or the plain one if none")


class SearchOutcome(BaseModel):
    """Results of one retrieval strategy."""
    mode: str
    results: List[SearchResult] = Field(default_factory=list)
    answers: List[Answer] = Field(default_factory=list)
    degraded: bool = Field(default=False, description="Semantic layer returned nothing usable")
    detail: Optional[str] = None

    @property
    def total_count(self) -> int:
        return len(self.results)
