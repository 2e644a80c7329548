"""
This __init__.py file makes the recordlayer directory a Python package
and exposes the main `RecordEngine`, the transaction API and the query DSL.
"""

from .abc import AclContext, Clock, Schema, StorageDriver
from .context import FixedClock, StaticAclContext, SystemClock
from .engine import RecordEngine
from .querydsl import MongoWhereCompiler, Q, compile_filter, compile_sort
from .registry import ModelRegistry
from .sanitizer import FieldSanitizer, sanitize
from .schema import FilterGroup, FilterLeaf, FlatOperation, Operation, TransactionResult, TransactionState
from .transaction import LoggingTransactionHooks, Transaction, TransactionCoalescer, TransactionHooks

__version__ = "0.1.0"

__all__ = [
    "RecordEngine",
    "StorageDriver",
    "Schema",
    "AclContext",
    "Clock",
    "SystemClock",
    "FixedClock",
    "StaticAclContext",
    "ModelRegistry",
    "FieldSanitizer",
    "sanitize",
    "Q",
    "MongoWhereCompiler",
    "compile_filter",
    "compile_sort",
    "FilterLeaf",
    "FilterGroup",
    "Operation",
    "FlatOperation",
    "TransactionResult",
    "TransactionState",
    "Transaction",
    "TransactionCoalescer",
    "TransactionHooks",
    "LoggingTransactionHooks",
]
