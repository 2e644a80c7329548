"""Base compiler interface.

Defines the abstract contract all backend-specific where compilers must follow.
"""

from abc import ABC, abstractmethod
from typing import Any

__all__ = ("BaseWhere",)


class BaseWhere(ABC):
    """Abstract base class for where clause compilers.

    Subclasses implement `to_where` and `to_expr` to produce backend-specific
    filter structures from a filter tree.
    """

    @abstractmethod
    def to_where(self, node: Any) -> Any:
        """
        Convert a filter tree (Q, FilterNode or raw dict) into the backend-native
        filter representation (a query document for MongoDB).
        """
        raise NotImplementedError

    @abstractmethod
    def to_expr(self, node: Any) -> str:
        """Convert a filter tree into a string expression for debugging."""
        raise NotImplementedError
