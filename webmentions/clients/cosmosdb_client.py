"""Azure Cosmos DB backend for the document store."""

import logging
from typing import Any, Dict, List, Mapping, Optional

from azure.core import MatchConditions
from azure.cosmos.aio import CosmosClient
from azure.cosmos.aio._container import ContainerProxy
from azure.cosmos.aio._database import DatabaseProxy
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosHttpResponseError,
    CosmosResourceNotFoundError,
)

from webmentions.clients.document_store import (
    DEFAULT_TRANSACTION_ATTEMPTS,
    Document,
    DocumentNotFoundError,
    StoredDocument,
    StoreUnavailableError,
    TransactionConflictError,
    UpdateFn,
    check_field_name,
    parse_order_by,
)

logger = logging.getLogger(__name__)

PARTITION_KEY_PATH = "/pk"

# Offset without a limit still needs a LIMIT clause in Cosmos SQL.
_UNBOUNDED_LIMIT = 2 ** 31 - 1

_ENVELOPE_FIELDS = ("id", "pk", "namespace", "kind")


class CosmosDBDocumentStore:
    """Async Cosmos DB document store with connection management.

    Uses the NoSQL API. Each (namespace, kind) pair is its own logical
    partition, so keyed reads and per-kind queries stay single-partition.
    Supports async context manager pattern for proper resource cleanup.
    """

    def __init__(
        self,
        endpoint: str,
        key: str,
        database_name: str,
        container_name: str,
        namespace: str,
        max_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS,
    ):
        """Initialize the Cosmos DB document store.

        Args:
            endpoint: Cosmos DB account endpoint URL
            key: Cosmos DB account key
            database_name: Name of the database to use
            container_name: Name of the container to use
            namespace: Tenant namespace all documents are written into
            max_attempts: Attempts before a transaction reports a conflict
        """
        if not namespace:
            raise ValueError("Document store namespace cannot be empty.")
        self.namespace = namespace
        self._endpoint = endpoint
        self._key = key
        self._database_name = database_name
        self._container_name = container_name
        self._max_attempts = max_attempts

        self._client: Optional[CosmosClient] = None
        self._database: Optional[DatabaseProxy] = None
        self._container: Optional[ContainerProxy] = None

    async def connect(self) -> None:
        """Establish connection and ensure database/container exist."""
        self._client = CosmosClient(url=self._endpoint, credential=self._key)
        await self._client.__aenter__()

        # Get or create database
        try:
            self._database = self._client.get_database_client(self._database_name)
            await self._database.read()
        except CosmosResourceNotFoundError:
            self._database = await self._client.create_database(self._database_name)

        # Get or create container
        try:
            self._container = self._database.get_container_client(self._container_name)
            await self._container.read()
        except CosmosResourceNotFoundError:
            self._container = await self._database.create_container(
                id=self._container_name,
                partition_key={"paths": [PARTITION_KEY_PATH], "kind": "Hash"},
            )

    async def close(self) -> None:
        """Close the Cosmos DB connection."""
        if self._client:
            await self._client.close()
            self._client = None
            self._database = None
            self._container = None

    async def __aenter__(self) -> "CosmosDBDocumentStore":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Async context manager exit with cleanup."""
        await self.close()
        return False

    def _require_container(self) -> ContainerProxy:
        if self._container is None:
            raise RuntimeError("CosmosDB client not connected. Call connect() first.")
        return self._container

    def _partition_key(self, kind: str) -> str:
        return f"{self.namespace}/{kind}"

    def _envelope(self, kind: str, key: str, document: Document) -> Dict[str, Any]:
        return {
            **document,
            "id": key,
            "pk": self._partition_key(kind),
            "namespace": self.namespace,
            "kind": kind,
        }

    @staticmethod
    def _unwrap(item: Mapping[str, Any]) -> Document:
        """Strip the envelope and Cosmos system fields (``_etag``, ``_ts``...)."""
        return {
            name: value
            for name, value in item.items()
            if name not in _ENVELOPE_FIELDS and not name.startswith("_")
        }

    async def get(self, kind: str, key: str) -> Document:
        container = self._require_container()
        try:
            item = await container.read_item(item=key, partition_key=self._partition_key(kind))
        except CosmosResourceNotFoundError as e:
            raise DocumentNotFoundError(f"{kind}/{key} not found") from e
        except CosmosHttpResponseError as e:
            raise StoreUnavailableError(f"Failed to read {kind}/{key}: {e}") from e
        return self._unwrap(item)

    async def put(self, kind: str, key: str, document: Document) -> None:
        container = self._require_container()
        try:
            await container.upsert_item(body=self._envelope(kind, key, document))
        except CosmosHttpResponseError as e:
            raise StoreUnavailableError(f"Failed to write {kind}/{key}: {e}") from e

    async def query(
        self,
        kind: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[StoredDocument]:
        container = self._require_container()
        partition_key = self._partition_key(kind)

        query = "SELECT * FROM c WHERE c.pk = @pk"
        parameters: List[Dict[str, Any]] = [{"name": "@pk", "value": partition_key}]

        for index, (name, value) in enumerate((filters or {}).items()):
            query += f" AND c.{check_field_name(name)} = @f{index}"
            parameters.append({"name": f"@f{index}", "value": value})

        order = parse_order_by(order_by)
        if order:
            field_name, descending = order
            query += f" ORDER BY c.{field_name} {'DESC' if descending else 'ASC'}"

        if limit is not None or offset:
            query += " OFFSET @offset LIMIT @limit"
            parameters.append({"name": "@offset", "value": offset})
            parameters.append({"name": "@limit", "value": _UNBOUNDED_LIMIT if limit is None else limit})

        results: List[StoredDocument] = []
        try:
            async for item in container.query_items(
                query=query,
                parameters=parameters,
                partition_key=partition_key,
            ):
                results.append(StoredDocument(key=item["id"], data=self._unwrap(item)))
        except CosmosHttpResponseError as e:
            raise StoreUnavailableError(f"Failed to query {kind}: {e}") from e
        return results

    async def transaction(self, kind: str, key: str, update: UpdateFn) -> Document:
        """Read-modify-write a single document guarded by its etag.

        Raises:
            DocumentNotFoundError: If the key does not exist.
            TransactionConflictError: If every attempt lost to another writer.
        """
        container = self._require_container()
        partition_key = self._partition_key(kind)

        for attempt in range(1, self._max_attempts + 1):
            try:
                item = await container.read_item(item=key, partition_key=partition_key)
            except CosmosResourceNotFoundError as e:
                raise DocumentNotFoundError(f"{kind}/{key} not found") from e
            except CosmosHttpResponseError as e:
                raise StoreUnavailableError(f"Failed to read {kind}/{key}: {e}") from e

            updated = update(self._unwrap(item))

            try:
                await container.replace_item(
                    item=key,
                    body=self._envelope(kind, key, updated),
                    etag=item["_etag"],
                    match_condition=MatchConditions.IfNotModified,
                )
                return updated
            except CosmosAccessConditionFailedError:
                logger.info(f"Conflict updating {kind}/{key} (attempt {attempt}/{self._max_attempts})")
            except CosmosResourceNotFoundError as e:
                raise DocumentNotFoundError(f"{kind}/{key} was deleted during update") from e
            except CosmosHttpResponseError as e:
                raise StoreUnavailableError(f"Failed to write {kind}/{key}: {e}") from e

        raise TransactionConflictError(
            f"{kind}/{key} was modified concurrently {self._max_attempts} times"
        )
