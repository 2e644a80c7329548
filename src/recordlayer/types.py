"""Type aliases for recordlayer package.

This module provides reusable type definitions to ensure consistency
across the codebase and improve code readability.
"""

from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

FieldId = str
ModelId = str
RecordId = str

# Compiled MongoDB filter document
QueryDoc = Dict[str, Any]

# Record payloads and field updates
Payload = Mapping[str, Any]
Updates = Dict[str, Any]

# Sort input: [{"name": "asc"}, ("age", "desc")] and its compiled form
SortEntry = Union[Mapping[str, str], Tuple[str, str]]
SortSpec = Sequence[SortEntry]
SortDirectives = List[Tuple[str, int]]
