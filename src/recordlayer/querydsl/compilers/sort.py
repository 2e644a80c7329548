"""Sort compiler.

Converts an ordered list of `{fieldId: "asc"|"desc"}` entries into MongoDB
sort directives: a list of `(field, direction)` pairs as accepted by
`pymongo.cursor.Cursor.sort`. Order is the sort key precedence, so the
result is never built as a plain mapping.
"""

from collections.abc import Mapping
from typing import Any, List, Optional, Set, Tuple

from ...constants import SORT_DIRECTION_MAP
from ...exceptions import SortCompileError
from ...logger import Logger
from ...types import SortDirectives, SortSpec

__all__ = ("compile_sort",)

logger = Logger(__name__)


def _entry_pair(entry: Any) -> Tuple[str, Any]:
    if isinstance(entry, Mapping):
        if len(entry) != 1:
            raise SortCompileError("Sort entry must hold exactly one field", entry=dict(entry))
        return next(iter(entry.items()))
    if isinstance(entry, (tuple, list)) and len(entry) == 2:
        return entry[0], entry[1]
    raise SortCompileError("Sort entry must be a single-entry mapping or a (field, direction) pair", entry=entry)


def compile_sort(sort_spec: Optional[SortSpec]) -> SortDirectives:
    """Compile a sort spec into ordered MongoDB sort directives.

    A field referenced more than once keeps its first occurrence; later
    ones are dropped since a MongoDB sort document cannot repeat a key.

    Args:
        sort_spec: e.g. `[{"birthDate": "asc"}, {"lastName": "desc"}]`

    Returns:
        e.g. `[("birthDate", 1), ("lastName", -1)]`

    Raises:
        SortCompileError: On malformed entries or unknown directions
    """
    if not sort_spec:
        return []
    if isinstance(sort_spec, (str, bytes, Mapping)):
        raise SortCompileError("Sort spec must be an ordered list of entries", sort=sort_spec)

    directives: List[Tuple[str, int]] = []
    seen: Set[str] = set()
    for entry in sort_spec:
        field, direction = _entry_pair(entry)
        if not isinstance(field, str) or not field:
            raise SortCompileError("Sort field must be a non-empty string", entry=entry)
        marker = SORT_DIRECTION_MAP.get(str(direction).strip().lower())
        if marker is None:
            raise SortCompileError("Invalid sort direction. Supported: asc, desc", field=field, direction=direction)
        if field in seen:
            logger.warning("Duplicate sort field '%s' ignored; first occurrence kept", field)
            continue
        seen.add(field)
        directives.append((field, marker))
    return directives
