"""
Error types for the retrieval core.
"""


class RetrievalError(Exception):
    """Base exception for retrieval core errors."""


class ConfigurationError(RetrievalError):
    """Missing or invalid backend configuration. Fatal at initialization."""


class VectorStoreError(RetrievalError):
    """A vector backend call failed."""

    def __init__(self, operation: str, original_error: Exception):
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"Vector store {operation} failed: {original_error}")


class CompletionServiceError(RetrievalError):
    """The text-completion service failed or is unreachable."""
