"""
Main engine for orchestrating record persistence.

This module provides the `RecordEngine`, a high-level class wiring a storage
driver, a model schema and a clock into the filter/sort compilers, the field
sanitizer and the transaction coalescer.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Union

if TYPE_CHECKING:
    from recordlayer.querydsl.q import Q

from recordlayer.settings import settings

from .abc import AclContext, Clock, Schema, StorageDriver
from .context import SystemClock
from .exceptions import StorageError
from .logger import Logger
from .querydsl.compilers.mongo import MongoWhereCompiler
from .querydsl.compilers.sort import compile_sort
from .sanitizer import FieldSanitizer
from .schema import FilterNode, Operation, TransactionResult
from .transaction import Transaction, TransactionCoalescer, TransactionHooks
from .types import Payload, QueryDoc, SortDirectives, SortSpec


class RecordEngine:
    """High-level orchestrator for record queries and writes.

    Key Features:
        - Filter trees (dict, FilterNode or Q) compiled to MongoDB queries
        - Sort specs compiled to ordered sort directives
        - Inbound payloads whitelisted against the model schema
        - Denormalized updates coalesced into a single storage call

    Attributes:
        driver: Storage driver instance
        schema: Model schema used by the sanitizer
        clock: Time source for date macros and audit stamps
        compiler: Filter compiler bound to `clock` (no ACL)
        coalescer: Transaction coalescer bound to `driver`
    """

    def __init__(
        self,
        driver: StorageDriver,
        schema: Schema,
        clock: Optional[Clock] = None,
        hooks: Optional[TransactionHooks] = None,
    ) -> None:
        self._driver = driver
        self._schema = schema
        self.clock = clock or SystemClock()
        self.compiler = MongoWhereCompiler(clock=self.clock)
        self.sanitizer = FieldSanitizer(schema)
        self.coalescer = TransactionCoalescer(driver, hooks=hooks, clock=self.clock)
        self.logger = Logger(self.__class__.__name__)
        self.logger.message(
            "RecordEngine initialized: driver=%s schema=%s",
            driver.__class__.__name__,
            schema.__class__.__name__,
        )

    @property
    def driver(self) -> StorageDriver:
        """Access the storage driver instance."""
        return self._driver

    @property
    def schema(self) -> Schema:
        """Access the model schema instance."""
        return self._schema

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def compile_filter(
        self,
        tree: Union["Q", FilterNode, Dict[str, Any]],
        acl: Optional[AclContext] = None,
    ) -> QueryDoc:
        """Compile a filter tree into a MongoDB query document.

        Args:
            tree: Q object, FilterLeaf/FilterGroup or language-neutral dict
            acl: Caller identity used to resolve `$userId`

        Raises:
            FilterCompileError: On malformed nodes or unknown operators
            MacroResolutionError: If `$userId` is used without `acl`
        """
        return self.compiler.with_acl(acl).compile_filter(tree)

    def compile_sort(self, sort_spec: Optional[SortSpec]) -> SortDirectives:
        """Compile a sort spec into ordered `(field, direction)` pairs."""
        return compile_sort(sort_spec)

    def search(
        self,
        model_id: str,
        where: Optional[Union["Q", FilterNode, Dict[str, Any]]] = None,
        sort: Optional[SortSpec] = None,
        acl: Optional[AclContext] = None,
        projection: Optional[Sequence[str]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Find the records of a model matching a filter, in sort order.

        Args:
            model_id: Model to search
            where: Optional filter tree; None matches every record
            sort: Optional sort spec, e.g. `[{"lastName": "asc"}]`
            acl: Caller identity used to resolve `$userId`
            projection: Fields to return
            skip: Records to skip
            limit: Max records (default `SEARCH_LIMIT`, 0 means no limit)

        Raises:
            StorageError: If the driver has no read support
        """
        find = getattr(self.driver, "find", None)
        if find is None:
            raise StorageError("Storage driver does not support search", driver=self.driver.__class__.__name__)
        query = self.compile_filter(where, acl) if where is not None else {}
        directives = self.compile_sort(sort)
        if limit is None:
            limit = settings.SEARCH_LIMIT
        self.logger.debug("Searching model=%s query=%s sort=%s", model_id, query, directives)
        return find(model_id, query, sort=directives, projection=projection, skip=skip, limit=limit)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def sanitize(self, payload: Payload, model_id: str) -> Dict[str, Any]:
        """Whitelist a payload against the accepted fields of its model."""
        return self.sanitizer.sanitize(payload, model_id)

    def transaction(
        self,
        user_id: Optional[str] = None,
        db_mode: Optional[str] = None,
        id: Optional[str] = None,
    ) -> Transaction:
        """Return a new transaction bound to this engine's coalescer."""
        return Transaction(id=id, user_id=user_id, db_mode=db_mode, coalescer=self.coalescer)

    def update(
        self,
        model_id: str,
        record_id: str,
        payload: Payload,
        user_id: Optional[str] = None,
    ) -> TransactionResult:
        """Sanitize and write the fields of a single record.

        Returns:
            The outcome of the one-operation transaction
        """
        updates = self.sanitize(payload, model_id)
        tx = self.transaction(user_id=user_id)
        tx.add_operation(Operation(model_id=model_id, record_id=record_id, updates=updates))
        return self.coalescer.run(tx)

    def bulk_update(
        self,
        operations: Sequence[Union[Operation, Mapping[str, Any]]],
        user_id: Optional[str] = None,
    ) -> TransactionResult:
        """Sanitize every operation and write them all in one transaction.

        Raises:
            TransactionError: If an operation is invalid
            UnknownModelError: If an operation targets an unregistered static model
        """
        tx = self.transaction(user_id=user_id)
        for item in operations:
            operation = Operation.from_any(item)
            tx.add_operation(
                Operation(
                    model_id=operation.model_id,
                    record_id=operation.record_id,
                    updates=self.sanitize(operation.updates, operation.model_id),
                )
            )
        self.logger.message("Bulk update of %d operation(s) for user=%s", len(tx), user_id)
        return self.coalescer.run(tx)
