"""MongoDB-backed store of parking lot records."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from pydantic import ValidationError
from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.errors import ConnectionFailure, PyMongoError
from pymongo.server_api import ServerApi

from ..errors import ConfigurationMissing, StoreUnavailable
from ..metrics import increment_store_reconnects
from .models import LocationRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DATABASE = "ParkingDB"
DEFAULT_COLLECTION = "parkingLots"


class LocationStore:
    """
    Owns the connection to the parking lot collection.

    The client is created lazily on first use, cached, and probed with a
    ``ping`` before each operation. A failed probe or a connection error
    during the operation discards the client and reconnects, at most once
    per operation; if that fails too the operation raises StoreUnavailable.
    Other driver errors (a rejected query or write) raise StoreUnavailable
    without touching the shared client.

    The application creates one store at startup and closes it at
    shutdown. The underlying AsyncMongoClient pools its connections, so
    the refresh loop and API requests can share it.
    """

    def __init__(
        self,
        uri: str,
        database: str = DEFAULT_DATABASE,
        collection: str = DEFAULT_COLLECTION,
        timeout_seconds: float = 10.0,
        client_factory: Callable[..., Any] = AsyncMongoClient,
    ):
        """
        Initialize the store (no connection is made yet).

        Args:
            uri: MongoDB connection string
            database: Database name
            collection: Collection holding the parking lot documents
            timeout_seconds: Upper bound for server selection and each operation
            client_factory: Callable building the client, same signature as AsyncMongoClient

        Raises:
            ConfigurationMissing: If the connection string is empty
        """
        if not uri:
            raise ConfigurationMissing("MongoDB connection string is missing (set MONGODB_URI)")

        self.uri = uri
        self.database = database
        self.collection_name = collection
        self.timeout_seconds = timeout_seconds
        self._client_factory = client_factory
        self._client = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """Whether a client is currently cached."""
        return self._client is not None

    async def _connect(self) -> None:
        timeout_ms = int(self.timeout_seconds * 1000)
        client = self._client_factory(
            self.uri,
            serverSelectionTimeoutMS=timeout_ms,
            timeoutMS=timeout_ms,
            appname="parkalot",
            tz_aware=True,
            server_api=ServerApi("1", strict=True, deprecation_errors=True),
        )
        try:
            await client.admin.command("ping")
        except PyMongoError:
            await client.close()
            raise

        self._client = client
        logger.info(f"MongoDB connection verified for database: {self.database}")

    async def _discard(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            increment_store_reconnects()
            try:
                await client.close()
            except PyMongoError as e:
                logger.debug(f"Error closing stale MongoDB client: {e}")

    async def _collection(self) -> tuple[Any, bool]:
        """
        Get the collection, probing and if needed replacing the client.

        Returns:
            Tuple of (collection, whether a stale client was replaced)

        Raises:
            StoreUnavailable: If a stale client was dropped and reconnecting failed
        """
        async with self._lock:
            replaced = False
            if self._client is not None:
                try:
                    await self._client.admin.command("ping")
                except PyMongoError as e:
                    logger.warning(f"MongoDB liveness probe failed, reconnecting: {e}")
                    await self._discard()
                    replaced = True

            if self._client is None:
                try:
                    await self._connect()
                except PyMongoError as e:
                    if replaced:
                        logger.error(f"MongoDB reconnect failed: {e}")
                        raise StoreUnavailable(f"reconnect failed: {e}") from e
                    raise

            return self._client[self.database][self.collection_name], replaced

    async def _execute(self, operation: str, func: Callable[[Any], Awaitable[T]]) -> T:
        reconnected = False
        try:
            collection, reconnected = await self._collection()
            return await func(collection)
        except ConnectionFailure as e:
            if reconnected:
                logger.error(f"Store operation '{operation}' failed after reconnect: {e}")
                raise StoreUnavailable(f"{operation} failed: {e}") from e
            logger.warning(f"Store operation '{operation}' failed, retrying after reconnect: {e}")
        except PyMongoError as e:
            logger.error(f"Store operation '{operation}' failed: {e}")
            raise StoreUnavailable(f"{operation} failed: {e}") from e

        async with self._lock:
            await self._discard()

        try:
            collection, _ = await self._collection()
            return await func(collection)
        except PyMongoError as e:
            logger.error(f"Store operation '{operation}' failed after reconnect: {e}")
            raise StoreUnavailable(f"{operation} failed: {e}") from e

    @staticmethod
    def _to_records(docs: Iterable[dict]) -> list[LocationRecord]:
        records = []
        for doc in docs:
            try:
                records.append(LocationRecord.model_validate(doc))
            except ValidationError as e:
                logger.warning(f"Skipping invalid parking lot document {doc.get('_id')}: {e}")
        return records

    async def find_all(self) -> list[LocationRecord]:
        """
        Get every parking lot record.

        Returns:
            Records in collection order

        Raises:
            StoreUnavailable: If the store can't be reached
        """

        async def op(collection):
            return await collection.find({}).to_list()

        return self._to_records(await self._execute("find_all", op))

    async def update_availability(
        self,
        location_id: str,
        available: int,
        timestamp: datetime,
    ) -> Optional[LocationRecord]:
        """
        Atomically set the available count and last-updated time of a record.

        Args:
            location_id: Parking lot identifier
            available: New free-space count
            timestamp: Time of the update

        Returns:
            The record after the update, or None if no such record exists

        Raises:
            StoreUnavailable: If the store can't be reached
        """

        async def op(collection):
            return await collection.find_one_and_update(
                {"ParkingID": location_id},
                {"$set": {"Available": available, "lastUpdated": timestamp}},
                return_document=ReturnDocument.AFTER,
            )

        doc = await self._execute("update_availability", op)
        if doc is None:
            return None

        records = self._to_records([doc])
        return records[0] if records else None

    async def find_by_ids(self, ids: Iterable[str]) -> dict[str, LocationRecord]:
        """
        Look up several records at once.

        Args:
            ids: Parking lot identifiers (duplicates allowed)

        Returns:
            Mapping of id to record; ids with no record are simply absent

        Raises:
            StoreUnavailable: If the store can't be reached
        """
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return {}

        async def op(collection):
            return await collection.find({"ParkingID": {"$in": wanted}}).to_list()

        found: dict[str, LocationRecord] = {}
        for record in self._to_records(await self._execute("find_by_ids", op)):
            found.setdefault(record.id, record)
        return found

    async def touch_all(self, timestamp: datetime) -> int:
        """
        Set the last-updated time on every record.

        Returns:
            Number of documents modified

        Raises:
            StoreUnavailable: If the store can't be reached
        """

        async def op(collection):
            return await collection.update_many({}, {"$set": {"lastUpdated": timestamp}})

        result = await self._execute("touch_all", op)
        return result.modified_count

    async def check_health(self) -> bool:
        """Probe the store without raising."""
        try:
            await self._collection()
            return True
        except (PyMongoError, StoreUnavailable) as e:
            logger.warning(f"MongoDB health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the client if one is open."""
        async with self._lock:
            client, self._client = self._client, None
        if client is not None:
            await client.close()
            logger.info("MongoDB connection closed")

    async def __aenter__(self) -> "LocationStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
