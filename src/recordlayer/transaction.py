"""Write-transaction coalescer.

Records of a document store are often denormalized: renaming a project means
updating the copy of its name held by every connected task. Rather than one
storage round-trip per record, application code batches those field updates
into a `Transaction`. Processing it:

1. groups the operations by `(model_id, record_id)`, merging their updates in
   submission order (last write wins per field);
2. flattens the groups, stamping `updatedAt` / `updatedBy` when the
   transaction carries a user id;
3. dispatches a single `update_one` when one record is touched, otherwise a
   single `update_bulk` covering every model and record;
4. commits (returns what changed) or rolls back (returns nothing).

Atomicity is whatever the storage primitive offers for its single call.
Merging only protects against conflicting updates within one transaction,
not across concurrent transactions.
"""

from abc import ABC
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .abc import Clock, StorageDriver
from .context import SystemClock
from .exceptions import TransactionError
from .logger import Logger
from .schema import FlatOperation, Operation, TransactionResult, TransactionState
from .settings import settings
from .types import ModelId, RecordId, Updates
from .utils import generate_id, iso_timestamp

__all__ = (
    "Transaction",
    "TransactionCoalescer",
    "TransactionHooks",
    "LoggingTransactionHooks",
)


class TransactionHooks(ABC):
    """Commit/rollback extension points.

    Exactly one of the hooks runs per processed transaction and receives the
    flattened operations. Override them to publish change events, invalidate
    caches or issue compensating writes after a failed bulk call.
    """

    def on_commit(self, transaction: "Transaction", operations: List[FlatOperation]) -> None:
        pass

    def on_rollback(
        self,
        transaction: "Transaction",
        operations: List[FlatOperation],
        error: Optional[BaseException],
    ) -> None:
        pass


class LoggingTransactionHooks(TransactionHooks):
    """Default hooks: record the outcome in the log."""

    def __init__(self) -> None:
        self.logger = Logger(self.__class__.__name__)

    def on_commit(self, transaction: "Transaction", operations: List[FlatOperation]) -> None:
        self.logger.message("Transaction %s committed %d operation(s)", transaction.id, len(operations))

    def on_rollback(
        self,
        transaction: "Transaction",
        operations: List[FlatOperation],
        error: Optional[BaseException],
    ) -> None:
        self.logger.warning(
            "Transaction %s rolled back %d operation(s): %s",
            transaction.id,
            len(operations),
            error or "storage reported failure",
        )


class TransactionCoalescer:
    """Turn transactions into the minimal set of storage calls.

    Attributes:
        driver: Storage primitives (`update_one`, `update_bulk`)
        hooks: Commit/rollback extension points
        clock: Time source for the `updatedAt` stamp
    """

    def __init__(
        self,
        driver: StorageDriver,
        hooks: Optional[TransactionHooks] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.driver = driver
        self.hooks = hooks or LoggingTransactionHooks()
        self.clock = clock or SystemClock()
        self.logger = Logger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Grouping / flattening
    # ------------------------------------------------------------------
    def group(self, operations: Sequence[Operation]) -> Dict[Tuple[ModelId, RecordId], Updates]:
        """Merge updates per `(model_id, record_id)` in submission order."""
        buckets: Dict[Tuple[ModelId, RecordId], Updates] = {}
        for operation in operations:
            bucket = buckets.setdefault((operation.model_id, operation.record_id), {})
            bucket.update(operation.updates)
        return buckets

    def flatten(
        self,
        buckets: Mapping[Tuple[ModelId, RecordId], Updates],
        user_id: Optional[str] = None,
    ) -> List[FlatOperation]:
        """Emit one `FlatOperation` per non-empty bucket, audit-stamped when `user_id` is set."""
        stamp = iso_timestamp(self.clock.now()) if user_id else None
        flat: List[FlatOperation] = []
        for (model_id, record_id), updates in buckets.items():
            if not updates:
                continue
            merged = dict(updates)
            if user_id:
                merged[settings.AUDIT_UPDATED_AT_FIELD] = stamp
                merged[settings.AUDIT_UPDATED_BY_FIELD] = user_id
            flat.append(FlatOperation(model_id=model_id, record_id=record_id, updates=merged))
        return flat

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def dispatch(self, flat: List[FlatOperation]) -> bool:
        """Issue exactly one storage call for the flattened operations."""
        if len(flat) == 1:
            operation = flat[0]
            self.logger.debug("Dispatching as update_one model=%s record=%s", operation.model_id, operation.record_id)
            return bool(self.driver.update_one(operation.model_id, {"_id": operation.record_id}, operation.updates))
        self.logger.debug("Dispatching as update_bulk count=%d", len(flat))
        return bool(self.driver.update_bulk(flat))

    def run(self, transaction: "Transaction") -> TransactionResult:
        """Process a transaction and return its full outcome.

        Storage failures (falsy result or exception) never propagate: they
        turn into a ROLLED_BACK result carrying the error message. The state
        and result are settled before the hooks run, and a failing hook is
        logged and recorded on `result.error` without changing the state.
        """
        transaction._consume()
        operations = list(transaction.operations)

        if not operations:
            return self._settle(transaction, TransactionState.COMMITTED, [])

        transaction.state = TransactionState.GROUPING
        buckets = self.group(operations)

        flat = self.flatten(buckets, transaction.user_id)
        transaction.state = TransactionState.FLATTENED
        if not flat:
            self.logger.debug("Transaction %s has no field updates; nothing to dispatch", transaction.id)
            return self._settle(transaction, TransactionState.COMMITTED, [])

        transaction.state = TransactionState.DISPATCHED
        error: Optional[BaseException] = None
        try:
            success = self.dispatch(flat)
        except Exception as e:
            self.logger.exception("Transaction %s failed during storage call", transaction.id)
            success, error = False, e

        if not success:
            self.logger.message("Transaction %s could not process the operations", transaction.id)
            return self._settle(transaction, TransactionState.ROLLED_BACK, flat, error)

        self.logger.message("Transaction %s processed %d operation(s)", transaction.id, len(flat))
        return self._settle(transaction, TransactionState.COMMITTED, flat)

    def _settle(
        self,
        transaction: "Transaction",
        state: TransactionState,
        flat: List[FlatOperation],
        error: Optional[BaseException] = None,
    ) -> TransactionResult:
        if state == TransactionState.COMMITTED:
            result = transaction._finish(state, flat)
        else:
            result = transaction._finish(state, [], error=str(error) if error else "storage reported failure")

        try:
            if state == TransactionState.COMMITTED:
                self.hooks.on_commit(transaction, flat)
            else:
                self.hooks.on_rollback(transaction, flat, error)
        except Exception as e:
            self.logger.exception("Transaction %s %s hook failed", transaction.id, state.value)
            hook_error = f"{state.value} hook failed: {e}"
            result.error = f"{result.error}; {hook_error}" if result.error else hook_error
        return result


class Transaction:
    """A batch of record updates coalesced into minimal storage writes.

    The transaction owns its operation list until processed; afterwards it is
    consumed and cannot be processed again.

    Examples:
        >>> tx = Transaction(coalescer=coalescer, user_id="john@example.com")
        >>> tx.add_operation({"modelId": "task", "recordId": "t1", "updates": {"projectName": "Apollo"}})
        >>> tx.add_operation({"modelId": "task", "recordId": "t2", "updates": {"projectName": "Apollo"}})
        >>> changed = tx.process()  # one update_bulk call
        >>> tx.result.committed
        True
    """

    def __init__(
        self,
        operations: Optional[Sequence[Union[Operation, Mapping[str, Any]]]] = None,
        *,
        id: Optional[str] = None,
        user_id: Optional[str] = None,
        db_mode: Optional[str] = None,
        coalescer: Optional[TransactionCoalescer] = None,
    ) -> None:
        self.id = id or generate_id()
        self.user_id = user_id
        self.db_mode = db_mode or settings.DEFAULT_DB_MODE
        self.coalescer = coalescer
        self.state = TransactionState.EMPTY
        self.result: Optional[TransactionResult] = None
        self._operations: List[Operation] = []
        self._processed = False
        for operation in operations or []:
            self.add_operation(operation)

    @property
    def operations(self) -> Tuple[Operation, ...]:
        return tuple(self._operations)

    @property
    def processed(self) -> bool:
        return self._processed

    def __len__(self) -> int:
        return len(self._operations)

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} operations={len(self._operations)} state={self.state.value}>"

    def add_operation(self, operation: Union[Operation, Mapping[str, Any]]) -> "Transaction":
        """Add an operation; returns the transaction so calls can be chained.

        Raises:
            TransactionError: If the operation is invalid or the transaction was processed
        """
        if self.processed:
            raise TransactionError("Cannot add operations to a processed transaction", transaction_id=self.id)
        self._operations.append(Operation.from_any(operation))
        return self

    def process(self) -> List[FlatOperation]:
        """Process the transaction through its coalescer.

        Returns:
            The flattened operations on success; an empty list on rollback or
            when there was nothing to do. Use `result.state` to tell those apart.

        Raises:
            TransactionError: If no coalescer is bound or the transaction was already processed
        """
        if self.coalescer is None:
            raise TransactionError("Transaction is not bound to a coalescer", transaction_id=self.id)
        return self.coalescer.run(self).operations

    def _consume(self) -> None:
        if self.processed:
            raise TransactionError("Transaction already processed", transaction_id=self.id)
        self._processed = True

    def _finish(
        self,
        state: TransactionState,
        operations: List[FlatOperation],
        error: Optional[str] = None,
    ) -> TransactionResult:
        self.state = state
        self.result = TransactionResult(transaction_id=self.id, state=state, operations=operations, error=error)
        return self.result
