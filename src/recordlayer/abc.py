"""Abstract interfaces for the collaborators of the persistence layer.

The filter compiler, the sanitizer and the transaction coalescer never reach
for globals: they are handed implementations of these interfaces.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, List, Sequence, Set

from .types import FieldId, ModelId, Updates

if TYPE_CHECKING:
    from .schema import FlatOperation

__all__ = (
    "StorageDriver",
    "Schema",
    "AclContext",
    "Clock",
)


class StorageDriver(ABC):
    """Storage primitives consumed by the transaction coalescer.

    Implementations return a truthy value on success. They may raise on
    failure; the coalescer turns both a falsy result and an exception into
    a rolled back transaction.
    """

    @abstractmethod
    def update_one(self, model_id: ModelId, record_selector: Any, updates: Updates) -> bool:
        """Set `updates` on the single record of `model_id` matching `record_selector`."""
        raise NotImplementedError

    @abstractmethod
    def update_bulk(self, operations: Sequence["FlatOperation"]) -> bool:
        """Apply per-record updates spanning any number of models in one call."""
        raise NotImplementedError


class Schema(ABC):
    """Model registry boundary used by the sanitizer."""

    @abstractmethod
    def accepted_fields(self, model_id: ModelId) -> Set[FieldId]:
        """Return the field whitelist of a static model.

        Raises:
            UnknownModelError: If the model is not registered
        """
        raise NotImplementedError

    @abstractmethod
    def is_dynamic_model(self, model_id: ModelId) -> bool:
        """Whether the model is user-defined (no fixed field whitelist)."""
        raise NotImplementedError


class AclContext(ABC):
    """Identity of the caller, used to resolve the `$userId` macro."""

    @abstractmethod
    def effective_identity_set(self) -> List[str]:
        """Return every id the caller acts as (user id, groups, ...)."""
        raise NotImplementedError


class Clock(ABC):
    """Time source for date macros and audit stamps."""

    @abstractmethod
    def today(self) -> date:
        raise NotImplementedError

    @abstractmethod
    def now(self) -> datetime:
        raise NotImplementedError
