"""
Search index definition with full text, vector and semantic configuration.
"""

from typing import Any, Dict, Optional

from azure.search.documents.indexes.models import (
    HnswAlgorithmConfiguration,
    HnswParameters,
    SearchableField,
    SearchField,
    SearchFieldDataType,
    SearchIndex,
    SemanticConfiguration,
    SemanticField,
    SemanticPrioritizedFields,
    SemanticSearch,
    SimpleField,
    VectorSearch,
    VectorSearchProfile,
)

from vector_demo.utils.constants import (
    EMBEDDING_DIMENSIONS,
    HNSW_CONFIG_NAME,
    SEMANTIC_CONFIG_NAME,
    VECTOR_PROFILE_NAME,
    Fields,
)


def _vector_field(name: str, dimensions: int) -> SearchField:
    return SearchField(
        name=name,
        type=SearchFieldDataType.Collection(SearchFieldDataType.Single),
        searchable=True,
        vector_search_dimensions=dimensions,
        vector_search_profile_name=VECTOR_PROFILE_NAME,
    )


def build_schema(
    index_name: str,
    embedding_dimensions: int = EMBEDDING_DIMENSIONS,
    hnsw_parameters: Optional[Dict[str, Any]] = None,
    semantic_configuration_name: str = SEMANTIC_CONFIG_NAME,
) -> SearchIndex:
    """Build the index definition.

    Both vector fields share a single profile, which points at a single HNSW
    algorithm configuration. ``hnsw_parameters`` (``m``, ``ef_construction``,
    ``ef_search``, ``metric``) are handed to the service unchanged.
    """
    if embedding_dimensions <= 0:
        raise ValueError("embedding_dimensions must be positive")

    fields = [
        SimpleField(
            name=Fields.ID.value,
            type=SearchFieldDataType.String,
            key=True,
            filterable=True,
            sortable=True,
            facetable=True,
        ),
        SearchableField(
            name=Fields.TITLE.value,
            filterable=True,
            sortable=True,
        ),
        SearchableField(name=Fields.CONTENT.value),
        _vector_field(Fields.TITLE_VECTOR.value, embedding_dimensions),
        _vector_field(Fields.CONTENT_VECTOR.value, embedding_dimensions),
        SearchableField(
            name=Fields.CATEGORY.value,
            filterable=True,
            sortable=True,
            facetable=True,
        ),
    ]

    algorithm = HnswAlgorithmConfiguration(
        name=HNSW_CONFIG_NAME,
        parameters=HnswParameters(**hnsw_parameters) if hnsw_parameters else None,
    )
    vector_search = VectorSearch(
        profiles=[
            VectorSearchProfile(
                name=VECTOR_PROFILE_NAME,
                algorithm_configuration_name=HNSW_CONFIG_NAME,
            )
        ],
        algorithms=[algorithm],
    )

    semantic_search = SemanticSearch(
        configurations=[
            SemanticConfiguration(
                name=semantic_configuration_name,
                prioritized_fields=SemanticPrioritizedFields(
                    title_field=SemanticField(field_name=Fields.TITLE.value),
                    content_fields=[SemanticField(field_name=Fields.CONTENT.value)],
                    keywords_fields=[SemanticField(field_name=Fields.CATEGORY.value)],
                ),
            )
        ]
    )

    return SearchIndex(
        name=index_name,
        fields=fields,
        vector_search=vector_search,
        semantic_search=semantic_search,
    )
