import asyncio
import math
import re
import zlib
from typing import Dict, List, Optional

import pytest

from vector_demo.config import Settings
from vector_demo.errors import EmbeddingError, InvalidFilterError, SemanticUnavailableError
from vector_demo.rag.models import Answer, Caption, QuerySpec, SearchHit, SearchPage

DIMENSIONS = 1536

_TOKEN = re.compile(r"[a-z0-9]+")
_FILTER = re.compile(r"""^\s*(\w+)\s+eq\s+['"](.*)['"]\s*$""")


def tokenize(text: str) -> List[str]:
    return _TOKEN.findall(text.lower())


class FakeEmbedder:
    """Deterministic bag-of-words embeddings.

    ``vectors`` pins the embedding for an exact text; ``failing`` makes the
    embedding of a text raise.
    """

    def __init__(self, dimensions: int = DIMENSIONS, vectors: Optional[Dict[str, List[float]]] = None,
                 failing=(), delay: float = 0.0):
        self.dimensions = dimensions
        self.vectors = vectors or {}
        self.failing = set(failing)
        self.delay = delay
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    def vector_for(self, text: str) -> List[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        vector = [0.0] * self.dimensions
        for token in tokenize(text):
            vector[zlib.crc32(token.encode("utf-8")) % self.dimensions] += 1.0
        norm = math.sqrt(sum(value * value for value in vector)) or 1.0
        return [value / norm for value in vector]

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if text in self.failing:
                raise EmbeddingError(f"provider rejected {text!r}")
            return self.vector_for(text)
        finally:
            self.active -= 1


def unit(dimensions: int, position: int) -> List[float]:
    vector = [0.0] * dimensions
    vector[position] = 1.0
    return vector


def _cosine(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeSearchBackend:
    """In-memory stand-in for the search service.

    Vector search is exact cosine similarity, lexical search counts matching
    terms, and hybrid requests are fused with reciprocal rank fusion.
    """

    def __init__(self, semantic_enabled: bool = True, semantic_returns_nothing: bool = False):
        self.semantic_enabled = semantic_enabled
        self.semantic_returns_nothing = semantic_returns_nothing
        self.documents: Dict[str, dict] = {}
        self.schemas = []
        self.requests: List[QuerySpec] = []

    async def create_or_update_index(self, index):
        self.schemas.append(index)
        return index

    async def upsert(self, documents):
        for document in documents:
            self.documents[str(document["id"])] = dict(document)
        return len(documents)

    async def get_document(self, key: str) -> dict:
        return dict(self.documents[key])

    def _filtered(self, spec: QuerySpec) -> List[dict]:
        if not spec.filter:
            return list(self.documents.values())
        match = _FILTER.match(spec.filter)
        if match is None:
            raise InvalidFilterError(spec.filter, "Invalid expression. Parameter name: $filter", status_code=400)
        field, value = match.groups()
        return [doc for doc in self.documents.values() if str(doc.get(field)) == value]

    @staticmethod
    def _lexical(spec: QuerySpec, candidates: List[dict]) -> List[tuple]:
        terms = set(tokenize(spec.search_text or ""))
        scored = []
        for doc in candidates:
            words = tokenize(" ".join(str(doc.get(f, "")) for f in ("title", "content", "category")))
            score = float(sum(1 for word in words if word in terms))
            if score > 0:
                scored.append((doc, score))
        return sorted(scored, key=lambda item: item[1], reverse=True)

    @staticmethod
    def _vector(spec: QuerySpec, candidates: List[dict]) -> List[tuple]:
        field = spec.vector_fields[0]
        scored = [(doc, (1.0 + _cosine(spec.vector, doc[field])) / 2.0) for doc in candidates]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:spec.k_nearest_neighbors]

    async def search(self, spec: QuerySpec) -> SearchPage:
        self.requests.append(spec)
        if spec.semantic is not None:
            if not self.semantic_enabled:
                raise SemanticUnavailableError("Semantic search is not enabled for this service.",
                                               status_code=400, error_code="SemanticQueriesNotAvailable")
            if self.semantic_returns_nothing:
                return SearchPage(hits=None, answers=None)

        candidates = self._filtered(spec)
        rankings = []
        if spec.search_text:
            rankings.append(self._lexical(spec, candidates))
        if spec.vector:
            rankings.append(self._vector(spec, candidates))

        if len(rankings) == 1:
            ranked = rankings[0]
        else:
            fused: Dict[str, list] = {}
            for ranking in rankings:
                for rank, (doc, _) in enumerate(ranking, start=1):
                    entry = fused.setdefault(doc["id"], [doc, 0.0])
                    entry[1] += 1.0 / (60 + rank)
            ranked = sorted(((doc, score) for doc, score in fused.values()), key=lambda item: item[1], reverse=True)

        ranked = ranked[:spec.top or 50]
        hits = []
        for doc, score in ranked:
            hit = SearchHit(document={field: doc.get(field) for field in spec.select}, score=score)
            if spec.semantic is not None:
                hit.reranker_score = 1.0 + score
                hit.captions = [Caption(text=doc.get("content"), highlights=f"<em>{doc.get('title')}</em>")]
            hits.append(hit)

        answers = None
        if spec.semantic is not None:
            top_doc = ranked[0][0] if ranked else None
            answers = [Answer(key=str(top_doc["id"]), text=top_doc.get("content"), score=0.9)] if top_doc else []
        return SearchPage(hits=hits, answers=answers)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def backend():
    return FakeSearchBackend()


@pytest.fixture
def cosmos_document():
    return {
        "id": "1",
        "title": "Azure Cosmos DB",
        "content": "A globally distributed database",
        "category": "Databases",
    }


@pytest.fixture
def sample_documents(cosmos_document):
    return [
        cosmos_document,
        {
            "id": "2",
            "title": "Azure Functions",
            "content": "Serverless compute that runs code in response to events",
            "category": "Compute",
        },
        {
            "id": "3",
            "title": "Azure Blob Storage",
            "content": "Object storage for unstructured files and images",
            "category": "Storage",
        },
        {
            "id": "4",
            "title": "Azure App Service",
            "content": "Managed hosting for web apps and REST APIs",
            "category": "Web",
        },
    ]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        search_endpoint="https://unit-test.search.windows.net",
        index_name="idx",
        search_key="search-key",
        openai_api_key="openai-key",
        openai_endpoint="https://unit-test.openai.azure.com",
        documents_path=str(tmp_path / "documents.json"),
    )
