"""Client modules for external services."""

from webmentions.clients.cosmosdb_client import CosmosDBDocumentStore
from webmentions.clients.document_store import (
    DocumentNotFoundError,
    DocumentStore,
    StoredDocument,
    StoreError,
    StoreUnavailableError,
    TransactionConflictError,
)
from webmentions.clients.http_fetcher import (
    FetchError,
    FetchResponse,
    HttpFetcher,
    ResponseTooLargeError,
    create_http_client,
)
from webmentions.clients.identity_client import (
    AdminRequest,
    GoogleIdentityVerifier,
    IdentityVerifier,
)
from webmentions.clients.sqlite_store import SqliteDocumentStore

__all__ = [
    "CosmosDBDocumentStore",
    "DocumentNotFoundError",
    "DocumentStore",
    "StoredDocument",
    "StoreError",
    "StoreUnavailableError",
    "TransactionConflictError",
    "FetchError",
    "FetchResponse",
    "HttpFetcher",
    "ResponseTooLargeError",
    "create_http_client",
    "AdminRequest",
    "GoogleIdentityVerifier",
    "IdentityVerifier",
    "SqliteDocumentStore",
]
