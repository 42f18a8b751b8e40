"""
Error taxonomy for the search demo.

Every failure the core can produce is one of these types so callers can tell
a misconfiguration from a provider fault or a rejected query.
"""

from typing import Optional


class VectorDemoError(Exception):
    """Base class for all demo errors."""


class ConfigurationError(VectorDemoError):
    """Required connection parameters are missing or malformed."""


class EmbeddingError(VectorDemoError):
    """The embedding provider failed or returned a vector of the wrong size."""


class EnrichmentError(VectorDemoError):
    """A single document could not be turned into an index record."""

    def __init__(self, document_id: Optional[str], reason: str):
        self.document_id = document_id
        self.reason = reason
        super().__init__(f"Document {document_id!r}: {reason}")


class BackendError(VectorDemoError):
    """The search service rejected a schema, upload or query."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class InvalidFilterError(BackendError):
    """The service rejected the filter expression."""

    def __init__(self, filter_expression: str, message: str, status_code: Optional[int] = None,
                 error_code: Optional[str] = None):
        self.filter_expression = filter_expression
        super().__init__(message, status_code=status_code, error_code=error_code)


class SemanticUnavailableError(BackendError):
    """Semantic ranking is not enabled on the search service."""


class ChatError(VectorDemoError):
    """The chat completion call failed."""
