"""Query DSL module.

Exports the `Q` class for building filter trees and the MongoDB compilers
turning filter trees and sort specs into storage queries.
"""

from .compilers import MongoWhereCompiler, compile_filter, compile_sort
from .q import Q

__all__ = (
    "Q",
    "MongoWhereCompiler",
    "compile_filter",
    "compile_sort",
)
