"""
Custom exception hierarchy for MemHub.

Provides structured error types for better error handling and debugging.
All exceptions inherit from MemHubError for easy catching.
"""


class MemHubError(Exception):
    """
    Base exception for all MemHub errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize MemHub error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(MemHubError):
    """
    Base exception for store operations.
    Used for errors related to data storage operations.
    """

    pass


class VectorStoreError(StoreError):
    """
    Vector store operation errors.
    Raised when a module partition (vector database) operation fails.
    """

    pass


class CentralIndexError(StoreError):
    """
    Central index operation errors.
    Raised when the cross-module index cannot be read or written.
    """

    pass


class RelationshipStoreError(StoreError):
    """
    Relationship store operation errors.
    Raised when relationship edge operations fail.
    """

    pass


class SyncError(StoreError):
    """
    Synchronization errors between a module partition and the derived stores.
    Raised when a memory changed but its index entry or edges could not follow.
    """

    pass


class ValidationError(MemHubError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class ConfigurationError(MemHubError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass


class EmbeddingError(MemHubError):
    """
    Embedding generation errors.
    Raised when embedding generation fails.
    """

    pass


class EmbeddingUnavailableError(EmbeddingError):
    """
    Transient embedding failures: timeouts, connection errors, rate limits, 5xx.
    These are retried with backoff before surfacing.
    """

    pass


class EmbeddingInputError(EmbeddingError):
    """
    Permanent embedding failures: the provider rejected the input.
    Never retried.
    """

    pass


class ModuleError(MemHubError):
    """
    Memory module errors.
    Carries the module id and a short machine-readable code (STORE_ERROR, ...).
    """

    def __init__(
        self,
        module_id: str,
        code: str,
        message: str,
        context: dict | None = None,
    ):
        super().__init__(f"[{module_id}] {message}", context)
        self.module_id = module_id
        self.code = code
