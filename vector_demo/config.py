"""
Connection settings for Azure AI Search and Azure OpenAI.

Values come from a JSON settings file (``local.settings.json`` by default),
overridden by environment variables, which ``load_dotenv`` may populate from
a ``.env`` file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from vector_demo.errors import ConfigurationError
from vector_demo.utils.constants import (
    CHAT_DEPLOYMENT,
    DOCUMENTS_PATH,
    EMBEDDING_DEPLOYMENT,
    EMBEDDING_DIMENSIONS,
    OPENAI_API_VERSION,
    SEMANTIC_CONFIG_NAME,
    SETTINGS_FILE,
)

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "AZURE_SEARCH_SERVICE_ENDPOINT",
    "AZURE_SEARCH_INDEX_NAME",
    "AZURE_SEARCH_ADMIN_KEY",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
)


class Settings(BaseModel):
    """Resolved demo configuration."""
    search_endpoint: str = Field(..., description="Azure AI Search service endpoint")
    index_name: str = Field(..., description="Name of the search index")
    search_key: str = Field(..., description="Azure AI Search admin key")
    openai_api_key: str = Field(..., description="Azure OpenAI API key")
    openai_endpoint: str = Field(..., description="Azure OpenAI endpoint")
    embedding_deployment: str = Field(default=EMBEDDING_DEPLOYMENT, description="Embedding model deployment")
    chat_deployment: str = Field(default=CHAT_DEPLOYMENT, description="Chat model deployment")
    openai_api_version: str = Field(default=OPENAI_API_VERSION, description="Azure OpenAI API version")
    embedding_dimensions: int = Field(default=EMBEDDING_DIMENSIONS, description="Length of every embedding vector")
    max_concurrency: int = Field(default=4, description="Concurrent embedding calls during enrichment")
    request_timeout: float = Field(default=30.0, description="Timeout in seconds for each remote call")
    semantic_configuration_name: str = Field(default=SEMANTIC_CONFIG_NAME, description="Semantic ranking configuration")
    documents_path: str = Field(default=DOCUMENTS_PATH, description="JSON file with the documents to index")
    log_level: str = Field(default="INFO", description="Logging level name")


def _read_settings_file(path: Path) -> Dict[str, str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Settings file {path} is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Settings file {path} must contain a JSON object")
    # Azure Functions style files nest everything under "Values"
    if isinstance(payload.get("Values"), dict):
        payload = payload["Values"]
    return {str(key): str(value) for key, value in payload.items() if value is not None}


def _positive_number(values: Mapping[str, str], key: str, default, cast):
    raw = values.get(key)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive, got {raw!r}")
    return value


def settings_from_mapping(values: Mapping[str, str]) -> Settings:
    """Build settings from raw key/value pairs, validating required keys."""
    missing = [key for key in REQUIRED_KEYS if not str(values.get(key) or "").strip()]
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    return Settings(
        search_endpoint=values["AZURE_SEARCH_SERVICE_ENDPOINT"],
        index_name=values["AZURE_SEARCH_INDEX_NAME"],
        search_key=values["AZURE_SEARCH_ADMIN_KEY"],
        openai_api_key=values["AZURE_OPENAI_API_KEY"],
        openai_endpoint=values["AZURE_OPENAI_ENDPOINT"],
        embedding_deployment=values.get("AZURE_OPENAI_EMBEDDING_DEPLOYMENT") or EMBEDDING_DEPLOYMENT,
        chat_deployment=values.get("AZURE_OPENAI_CHAT_DEPLOYMENT") or CHAT_DEPLOYMENT,
        openai_api_version=values.get("AZURE_OPENAI_API_VERSION") or OPENAI_API_VERSION,
        embedding_dimensions=_positive_number(values, "EMBEDDING_DIMENSIONS", EMBEDDING_DIMENSIONS, int),
        max_concurrency=_positive_number(values, "EMBEDDING_MAX_CONCURRENCY", 4, int),
        request_timeout=_positive_number(values, "REQUEST_TIMEOUT_SECONDS", 30.0, float),
        semantic_configuration_name=values.get("SEMANTIC_CONFIGURATION_NAME") or SEMANTIC_CONFIG_NAME,
        documents_path=values.get("DOCUMENTS_PATH") or DOCUMENTS_PATH,
        log_level=(values.get("LOG_LEVEL") or "INFO").upper(),
    )


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings from the settings file and the environment.

    Environment variables win over values from the file. A missing file is
    only an error when ``path`` was given explicitly.
    """
    load_dotenv()

    explicit = path is not None or "VECTOR_DEMO_SETTINGS" in os.environ
    candidate = Path(path or os.getenv("VECTOR_DEMO_SETTINGS") or SETTINGS_FILE)

    values: Dict[str, str] = {}
    if candidate.exists():
        values.update(_read_settings_file(candidate))
        logger.debug("Loaded settings file %s", candidate)
    elif explicit:
        raise ConfigurationError(f"Settings file {candidate} not found")

    values.update({key: value for key, value in os.environ.items() if value})
    return settings_from_mapping(values)
