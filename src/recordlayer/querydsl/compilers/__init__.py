from .base import BaseWhere
from .mongo import MongoWhereCompiler, compile_filter, compile_group, compile_leaf
from .sort import compile_sort

__all__ = (
    "BaseWhere",
    "MongoWhereCompiler",
    "compile_filter",
    "compile_group",
    "compile_leaf",
    "compile_sort",
)
