"""Concrete storage driver for MongoDB.

This module provides the pymongo implementation of the `StorageDriver`
interface used by the transaction coalescer, plus the read primitives used by
`RecordEngine.search`.

Key Features:
    - Lazy client/database initialization from settings
    - `update_one` with `$set` on a single record
    - `update_bulk` spanning several collections: one unordered `bulk_write`
      of `UpdateOne` per collection
    - `find` / `count_documents` taking compiled query documents and sort
      directives untouched
    - pymongo errors wrapped into the recordlayer exception hierarchy
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pymongo import MongoClient, UpdateOne
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError

from recordlayer.abc import StorageDriver
from recordlayer.exceptions import MissingConfigError, StorageConnectionError, StorageQueryError
from recordlayer.logger import Logger
from recordlayer.schema import FlatOperation
from recordlayer.settings import settings as api_settings
from recordlayer.types import QueryDoc, SortDirectives
from recordlayer.utils import from_storage_id, group_by

__all__ = ("MongoStorageDriver",)


class MongoStorageDriver(StorageDriver):
    """Storage driver backed by a MongoDB database.

    Each model is stored in the collection of the same name; record ids live
    in `_id`.

    Attributes:
        uri: MongoDB connection string (default `MONGO_URI`)
        db_name: Database name (default `MONGO_DB_NAME`)
        connect_timeout_ms: Server selection / connect timeout
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        db_name: Optional[str] = None,
        *,
        client: Optional[MongoClient] = None,
        connect_timeout_ms: Optional[int] = None,
    ) -> None:
        self.uri = uri or api_settings.MONGO_URI
        self.db_name = db_name or api_settings.MONGO_DB_NAME
        self.connect_timeout_ms = connect_timeout_ms or api_settings.MONGO_CONNECT_TIMEOUT_MS
        self._client: Optional[MongoClient] = client
        self._db: Optional[Database] = None
        self.logger = Logger(self.__class__.__name__)

    @property
    def client(self) -> MongoClient:
        """Lazily initialize and return the pymongo client.

        Raises:
            MissingConfigError: If MONGO_URI is not configured
            StorageConnectionError: If the client cannot be created
        """
        if self._client is None:
            if not self.uri:
                raise MissingConfigError(
                    "MONGO_URI is not set. Please configure it in your .env file.",
                    config_key="MONGO_URI",
                    env_file=".env",
                )
            try:
                self._client = MongoClient(
                    self.uri,
                    serverSelectionTimeoutMS=self.connect_timeout_ms,
                    connectTimeoutMS=self.connect_timeout_ms,
                )
            except PyMongoError as e:
                raise StorageConnectionError(f"Cannot create MongoDB client: {e}") from e
            self.logger.message("MongoDB client initialized.")
        return self._client

    @property
    def db(self) -> Database:
        """Lazily resolve and return the database.

        Raises:
            MissingConfigError: If MONGO_DB_NAME is not configured
        """
        if self._db is None:
            if not self.db_name:
                raise MissingConfigError(
                    "MONGO_DB_NAME is not set. Please configure it in your .env file.",
                    config_key="MONGO_DB_NAME",
                    env_file=".env",
                )
            self._db = self.client[self.db_name]
            self.logger.message("MongoDB database '%s' selected.", self.db_name)
        return self._db

    def collection(self, model_id: str) -> Collection:
        return self.db[model_id]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None

    def ping(self) -> bool:
        """Return True when the server answers a ping."""
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            self.logger.warning("MongoDB ping failed: %s", e)
            return False

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_one(self, model_id: str, record_selector: Any, updates: Dict[str, Any]) -> bool:
        """Set `updates` on the record matching `record_selector`.

        Args:
            model_id: Target collection
            record_selector: MongoDB filter, usually `{"_id": record_id}`
            updates: Fields to set

        Returns:
            Whether the write was acknowledged

        Raises:
            StorageConnectionError: If the server is unreachable
            StorageQueryError: If the update fails
        """
        try:
            result = self.collection(model_id).update_one(record_selector, {"$set": updates})
        except ConnectionFailure as e:
            raise StorageConnectionError(f"MongoDB is unreachable: {e}", model_id=model_id) from e
        except PyMongoError as e:
            raise StorageQueryError(f"update_one failed: {e}", model_id=model_id) from e
        self.logger.debug("update_one model=%s matched=%s", model_id, result.matched_count)
        return bool(result.acknowledged)

    def update_bulk(self, operations: Sequence[Union[FlatOperation, Mapping[str, Any]]]) -> bool:
        """Apply per-record updates spanning several collections.

        Operations are grouped by model; each collection gets one unordered
        `bulk_write`. An empty sequence is a successful no-op.

        Returns:
            Whether every bulk write was acknowledged

        Raises:
            StorageConnectionError: If the server is unreachable
            StorageQueryError: If a bulk write fails
        """
        flat = [op if isinstance(op, FlatOperation) else FlatOperation.model_validate(dict(op)) for op in operations]
        acknowledged = True
        for model_id, model_ops in group_by(flat, lambda op: op.model_id).items():
            requests = [UpdateOne({"_id": op.record_id}, {"$set": op.updates}) for op in model_ops]
            try:
                result = self.collection(model_id).bulk_write(requests, ordered=False)
            except ConnectionFailure as e:
                raise StorageConnectionError(f"MongoDB is unreachable: {e}", model_id=model_id) from e
            except PyMongoError as e:
                raise StorageQueryError(f"update_bulk failed: {e}", model_id=model_id, count=len(requests)) from e
            self.logger.debug(
                "update_bulk model=%s requests=%d modified=%s", model_id, len(requests), result.modified_count
            )
            acknowledged = acknowledged and bool(result.acknowledged)
        return acknowledged

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(
        self,
        model_id: str,
        query: Optional[QueryDoc] = None,
        sort: Optional[SortDirectives] = None,
        projection: Optional[Union[Iterable[str], Mapping[str, Any]]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        """Return the records matching a compiled query document.

        Args:
            model_id: Source collection
            query: Compiled filter (see `MongoWhereCompiler`)
            sort: Compiled sort directives (see `compile_sort`)
            projection: Fields to return
            skip: Records to skip
            limit: Max records (0 means no limit)

        Returns:
            Records with `_id` exposed as `id`
        """
        try:
            cursor = self.collection(model_id).find(query or {}, projection=projection, skip=skip, limit=limit)
            if sort:
                cursor = cursor.sort(list(sort))
            records = [from_storage_id(doc) for doc in cursor]
        except ConnectionFailure as e:
            raise StorageConnectionError(f"MongoDB is unreachable: {e}", model_id=model_id) from e
        except PyMongoError as e:
            raise StorageQueryError(f"find failed: {e}", model_id=model_id, query=query) from e
        self.logger.debug("find model=%s returned=%d", model_id, len(records))
        return records

    def count_documents(self, model_id: str, query: Optional[QueryDoc] = None) -> int:
        """Count the records matching a compiled query document."""
        try:
            return self.collection(model_id).count_documents(query or {})
        except ConnectionFailure as e:
            raise StorageConnectionError(f"MongoDB is unreachable: {e}", model_id=model_id) from e
        except PyMongoError as e:
            raise StorageQueryError(f"count_documents failed: {e}", model_id=model_id, query=query) from e
