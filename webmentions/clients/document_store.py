"""Document store contract shared by the SQLite and Cosmos DB backends.

A store holds JSON documents addressed by ``(kind, key)`` inside a tenant
namespace. Single documents can be read-modify-written through
``transaction``, which uses optimistic concurrency on an etag and retries a
bounded number of times before reporting a conflict.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

DEFAULT_TRANSACTION_ATTEMPTS = 3

_FIELD_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")

Document = Dict[str, Any]
UpdateFn = Callable[[Document], Document]


class StoreError(Exception):
    """Base class for document store failures."""

    pass


class DocumentNotFoundError(StoreError):
    """Raised when a key does not resolve to a stored document."""

    pass


class TransactionConflictError(StoreError):
    """Raised when a transactional update keeps losing to concurrent writers."""

    pass


class StoreUnavailableError(StoreError):
    """Raised when the backing database cannot be reached or errors out."""

    pass


@dataclass(frozen=True)
class StoredDocument:
    """A document returned from a query together with its key."""

    key: str
    data: Document


def check_field_name(name: str) -> str:
    """Validate a field name used in a filter or ordering clause."""
    if not _FIELD_NAME.match(name):
        raise ValueError(f"Invalid field name: {name!r}")
    return name


def parse_order_by(order_by: Optional[str]) -> Optional[tuple]:
    """Split ``"-received_at"`` into ``("received_at", True)``."""
    if not order_by:
        return None
    descending = order_by.startswith("-")
    return check_field_name(order_by.lstrip("-")), descending


class DocumentStore(Protocol):
    """Namespaced key/value and query facade over a document database."""

    namespace: str

    async def get(self, kind: str, key: str) -> Document:
        ...

    async def put(self, kind: str, key: str, document: Document) -> None:
        ...

    async def query(
        self,
        kind: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[StoredDocument]:
        ...

    async def transaction(self, kind: str, key: str, update: UpdateFn) -> Document:
        ...

    async def close(self) -> None:
        ...
