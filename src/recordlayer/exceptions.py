"""Custom exceptions for the recordlayer library.

Compiler and sanitizer errors propagate synchronously to the caller.
Storage errors raised while a transaction is processed are caught by the
coalescer and surfaced as a rolled back `TransactionResult` instead.
"""

from typing import Any, Dict


# Base exception
class RecordLayerError(Exception):
    """Base exception for all recordlayer errors.

    Attributes:
        message: Error message
        details: Additional error context as key-value pairs
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        """Initialize exception with message and additional details.

        Args:
            message: Human-readable error message
            **kwargs: Additional context (e.g., node, model_id, field)
        """
        self.message = message
        self.details: Dict[str, Any] = kwargs
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the complete error message with details."""
        if not self.details:
            return self.message

        details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        if self.message:
            return f"{self.message} ({details_str})"
        return details_str

    def __repr__(self) -> str:
        """Return detailed representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# Query compilation exceptions
class QueryCompileError(RecordLayerError):
    """Base exception for filter and sort compilation failures."""


class FilterCompileError(QueryCompileError):
    """Raised when a filter node is malformed or uses an unknown operator.

    Example:
        >>> raise FilterCompileError("Unknown operator", node={"fieldId": "age", "operator": "~"})
    """


class MacroResolutionError(QueryCompileError):
    """Raised when a macro value cannot be resolved against the runtime context.

    Example:
        >>> raise MacroResolutionError("No identity context for $userId", field="owner")
    """


class SortCompileError(QueryCompileError):
    """Raised when a sort entry is malformed.

    Example:
        >>> raise SortCompileError("Invalid sort direction", field="name", direction="up")
    """


# Schema exceptions
class SchemaError(RecordLayerError):
    """Base exception for model schema errors."""


class UnknownModelError(SchemaError):
    """Raised when a static model is not registered.

    Example:
        >>> raise UnknownModelError("Model is not registered", model_id="invoice")
    """


# Transaction exceptions
class TransactionError(RecordLayerError):
    """Raised when a transaction is misused (reprocessed, unbound, invalid operation).

    Example:
        >>> raise TransactionError("Transaction already processed", transaction_id="t1")
    """


# Storage exceptions
class StorageError(RecordLayerError):
    """Base exception for storage driver failures."""


class StorageConnectionError(StorageError):
    """Raised when the storage backend is unreachable.

    Example:
        >>> raise StorageConnectionError("MongoDB is unreachable", uri="mongodb://localhost:27017")
    """


class StorageQueryError(StorageError):
    """Raised when a storage call fails.

    Example:
        >>> raise StorageQueryError("update_bulk failed", model_id="project")
    """


# Configuration exceptions
class ConfigurationError(RecordLayerError):
    """Raised when configuration is invalid or missing."""


class MissingConfigError(ConfigurationError):
    """Raised when required configuration values are not set.

    Example:
        >>> raise MissingConfigError("Configuration not set", config_key="MONGO_URI")
    """
