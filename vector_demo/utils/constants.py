from enum import Enum

EMBEDDING_DEPLOYMENT = "embedding"
CHAT_DEPLOYMENT = "chat2"
OPENAI_API_VERSION = "2024-12-01-preview"
EMBEDDING_DIMENSIONS = 1536

VECTOR_PROFILE_NAME = "my-vector-profile"
HNSW_CONFIG_NAME = "my-hnsw-vector-config"
SEMANTIC_CONFIG_NAME = "my-semantic-config"

DOCUMENTS_PATH = "data/sample-documents.json"
SETTINGS_FILE = "local.settings.json"


class Fields(str, Enum):
    """Index field names."""
    ID = "id"
    TITLE = "title"
    CONTENT = "content"
    CATEGORY = "category"
    TITLE_VECTOR = "titleVector"
    CONTENT_VECTOR = "contentVector"


SELECT_FIELDS = [Fields.TITLE.value, Fields.CONTENT.value, Fields.CATEGORY.value]
