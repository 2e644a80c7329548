"""Pytest configuration and fixtures for recordlayer tests."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest
from dotenv import load_dotenv

from recordlayer.abc import StorageDriver
from recordlayer.context import FixedClock, StaticAclContext
from recordlayer.engine import RecordEngine
from recordlayer.querydsl.compilers.mongo import MongoWhereCompiler
from recordlayer.registry import ModelRegistry
from recordlayer.schema import FlatOperation
from recordlayer.transaction import TransactionCoalescer, TransactionHooks

# Load environment variables
load_dotenv()

FROZEN_INSTANT = datetime(2024, 1, 5, 10, 30, 15, 123000, tzinfo=timezone.utc)


# In-memory driver for coalescer and engine testing
class InMemoryStorageDriver(StorageDriver):
    """Simple in-memory driver recording every storage call."""

    def __init__(self, result: Any = True, error: Optional[Exception] = None) -> None:
        self.result = result
        self.error = error
        self.calls: List[tuple] = []
        self.records: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def seed(self, model_id: str, records: Sequence[Dict[str, Any]]) -> None:
        collection = self.records.setdefault(model_id, {})
        for record in records:
            collection[record["id"]] = dict(record)

    def _apply(self, model_id: str, record_id: str, updates: Dict[str, Any]) -> None:
        self.records.setdefault(model_id, {}).setdefault(record_id, {"id": record_id}).update(updates)

    def update_one(self, model_id: str, record_selector: Any, updates: Dict[str, Any]) -> bool:
        self.calls.append(("update_one", model_id, record_selector, dict(updates)))
        if self.error is not None:
            raise self.error
        if self.result:
            self._apply(model_id, record_selector["_id"], updates)
        return self.result

    def update_bulk(self, operations: Sequence[FlatOperation]) -> bool:
        self.calls.append(("update_bulk", [op.to_dict() for op in operations]))
        if self.error is not None:
            raise self.error
        if self.result:
            for op in operations:
                self._apply(op.model_id, op.record_id, op.updates)
        return self.result

    def find(
        self,
        model_id: str,
        query: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
        projection: Optional[Sequence[str]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        self.calls.append(("find", model_id, query, sort, projection, skip, limit))
        items = list(self.records.get(model_id, {}).values())

        # Equality-only matcher; operator documents are checked by the compiler tests
        if query:
            items = [r for r in items if all(r.get(k) == v for k, v in query.items() if not k.startswith("$"))]
        for field, direction in reversed(sort or []):
            items.sort(key=lambda r: r.get(field), reverse=direction < 0)
        items = items[skip:]
        return items[:limit] if limit else items


class RecordingHooks(TransactionHooks):
    """Hooks keeping track of every call."""

    def __init__(self) -> None:
        self.commits: List[tuple] = []
        self.rollbacks: List[tuple] = []

    def on_commit(self, transaction, operations):
        self.commits.append((transaction.id, list(operations)))

    def on_rollback(self, transaction, operations, error):
        self.rollbacks.append((transaction.id, list(operations), error))


@pytest.fixture
def clock():
    """Clock frozen at 2024-01-05T10:30:15.123Z."""
    return FixedClock(FROZEN_INSTANT)


@pytest.fixture
def acl():
    """Identity set of john@example.com, member of team-a."""
    return StaticAclContext("john@example.com", "team-a", "*")


@pytest.fixture
def compiler(clock, acl):
    """Mongo compiler bound to the frozen clock and john's identity set."""
    return MongoWhereCompiler(clock=clock, acl=acl)


@pytest.fixture
def driver():
    return InMemoryStorageDriver()


@pytest.fixture
def hooks():
    return RecordingHooks()


@pytest.fixture
def coalescer(driver, hooks, clock):
    return TransactionCoalescer(driver, hooks=hooks, clock=clock)


@pytest.fixture
def registry():
    """Registry with the static models used across tests."""
    reg = ModelRegistry()
    reg.register("user", ["email", "firstName", "lastName"])
    reg.register("project", ["name", "status", "ownerId"])
    reg.register("task", ["title", "projectId", "projectName", "dueDate"])
    return reg


@pytest.fixture
def dynamic_model_id():
    return "01f6c940-e247-4d85-9f35-e3d59ea49289"


@pytest.fixture
def engine(driver, registry, clock, hooks):
    """Build RecordEngine with in-memory driver and frozen clock."""
    return RecordEngine(driver, registry, clock=clock, hooks=hooks)


@pytest.fixture
def make_driver():
    """Factory for drivers with a given result or failure."""
    return InMemoryStorageDriver
