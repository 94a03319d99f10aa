"""SQLite-backed document store for local development and tests."""

import json
import logging
import sqlite3
import uuid
from typing import Any, List, Mapping, Optional

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

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    namespace TEXT NOT NULL,
    kind TEXT NOT NULL,
    key TEXT NOT NULL,
    body TEXT NOT NULL,
    etag TEXT NOT NULL,
    PRIMARY KEY (namespace, kind, key)
)
"""


class SqliteDocumentStore:
    """Stores JSON documents in a single SQLite table.

    Every row carries an etag that changes on each write, so transactional
    updates can detect a concurrent writer the same way Cosmos DB does.
    """

    def __init__(
        self,
        db_path: str,
        namespace: str,
        max_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS,
    ):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
            namespace: Tenant namespace all documents are written into.
            max_attempts: Attempts before a transaction reports a conflict.
        """
        if not namespace:
            raise ValueError("Document store namespace cannot be empty.")
        self.namespace = namespace
        self._db_path = db_path
        self._max_attempts = max_attempts
        self._connection = sqlite3.connect(db_path)
        self._execute(CREATE_TABLE_SQL)
        logger.debug(f"SQLite document store ready at {db_path} (namespace {namespace})")

    def _execute(self, query: str, params=()) -> list:
        """Execute a statement, committing writes, and return all rows."""
        try:
            cursor = self._connection.execute(query, params)
            if query.strip().upper().startswith(("INSERT", "UPDATE", "DELETE")):
                self._connection.commit()
            rows = cursor.fetchall()
            cursor.close()
            return rows
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"SQLite operation failed: {e}") from e

    def _execute_update(self, query: str, params=()) -> int:
        """Execute a write statement and return the number of affected rows."""
        try:
            cursor = self._connection.execute(query, params)
            self._connection.commit()
            rowcount = cursor.rowcount
            cursor.close()
            return rowcount
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"SQLite operation failed: {e}") from e

    async def get(self, kind: str, key: str) -> Document:
        rows = self._execute(
            "SELECT body FROM documents WHERE namespace = ? AND kind = ? AND key = ?",
            (self.namespace, kind, key),
        )
        if not rows:
            raise DocumentNotFoundError(f"{kind}/{key} not found")
        return json.loads(rows[0][0])

    async def put(self, kind: str, key: str, document: Document) -> None:
        self._execute(
            """INSERT OR REPLACE INTO documents (namespace, kind, key, body, etag)
               VALUES (?, ?, ?, ?, ?)""",
            (self.namespace, kind, key, json.dumps(document), uuid.uuid4().hex),
        )

    async def query(
        self,
        kind: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[StoredDocument]:
        sql = "SELECT key, body FROM documents WHERE namespace = ? AND kind = ?"
        params: list = [self.namespace, kind]

        for name, value in (filters or {}).items():
            sql += f" AND json_extract(body, '$.{check_field_name(name)}') = ?"
            params.append(value)

        order = parse_order_by(order_by)
        if order:
            field_name, descending = order
            sql += f" ORDER BY json_extract(body, '$.{field_name}') {'DESC' if descending else 'ASC'}"

        if limit is not None or offset:
            sql += " LIMIT ? OFFSET ?"
            params.extend([-1 if limit is None else limit, offset])

        rows = self._execute(sql, tuple(params))
        return [StoredDocument(key=key, data=json.loads(body)) for key, body in rows]

    async def transaction(self, kind: str, key: str, update: UpdateFn) -> Document:
        """Read-modify-write a single document.

        Raises:
            DocumentNotFoundError: If the key does not exist.
            TransactionConflictError: If every attempt lost to another writer.
        """
        for attempt in range(1, self._max_attempts + 1):
            rows = self._execute(
                "SELECT body, etag FROM documents WHERE namespace = ? AND kind = ? AND key = ?",
                (self.namespace, kind, key),
            )
            if not rows:
                raise DocumentNotFoundError(f"{kind}/{key} not found")

            body, etag = rows[0]
            updated = update(json.loads(body))

            changed = self._execute_update(
                """UPDATE documents SET body = ?, etag = ?
                   WHERE namespace = ? AND kind = ? AND key = ? AND etag = ?""",
                (json.dumps(updated), uuid.uuid4().hex, self.namespace, kind, key, etag),
            )
            if changed == 1:
                return updated

            logger.info(f"Conflict updating {kind}/{key} (attempt {attempt}/{self._max_attempts})")

        raise TransactionConflictError(
            f"{kind}/{key} was modified concurrently {self._max_attempts} times"
        )

    async def close(self) -> None:
        """Close the database connection."""
        self._connection.close()

    async def __aenter__(self) -> "SqliteDocumentStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
