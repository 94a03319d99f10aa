"""Application context wiring every component together.

Built once at startup and handed to each entry point, so no component
reaches for module-level globals.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from webmentions.clients import (
    CosmosDBDocumentStore,
    DocumentStore,
    GoogleIdentityVerifier,
    HttpFetcher,
    IdentityVerifier,
    SqliteDocumentStore,
    create_http_client,
)
from webmentions.config import AppConfig, ConfigurationError
from webmentions.services import (
    ImageFetcher,
    MentionEnricher,
    MentionService,
    SentNotificationService,
    SlowVerifier,
    ThumbnailService,
    make_image_fetcher,
)

logger = logging.getLogger(__name__)


async def open_document_store(config: AppConfig) -> DocumentStore:
    """Open the document store selected by ``store.backend``."""
    backend = config.store.backend
    if backend == "sqlite":
        return SqliteDocumentStore(config.store.sqlite_path, config.store.namespace)
    elif backend == "cosmosdb":
        if config.cosmosdb is None:
            raise ConfigurationError("store.backend is cosmosdb but Cosmos DB is not configured.")
        store = CosmosDBDocumentStore(
            endpoint=config.cosmosdb.endpoint,
            key=config.cosmosdb.key,
            database_name=config.cosmosdb.database_name,
            container_name=config.cosmosdb.container_name,
            namespace=config.store.namespace,
        )
        await store.connect()
        return store
    raise ValueError(f"Unknown store backend: {backend!r}")


@dataclass
class AppContext:
    config: AppConfig
    store: DocumentStore
    http_client: httpx.AsyncClient
    mentions: MentionService
    thumbnails: ThumbnailService
    sent: SentNotificationService
    identity: IdentityVerifier

    @classmethod
    async def create(
        cls,
        config: AppConfig,
        store: Optional[DocumentStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        image_fetcher: Optional[ImageFetcher] = None,
        identity: Optional[IdentityVerifier] = None,
    ) -> "AppContext":
        """Build the context, opening any collaborator not supplied."""
        if store is None:
            store = await open_document_store(config)
        if http_client is None:
            http_client = create_http_client(config.fetch.user_agent, config.fetch.timeout_seconds)

        fetcher = HttpFetcher(
            http_client,
            timeout_seconds=config.fetch.timeout_seconds,
            max_bytes=config.fetch.max_source_bytes,
        )
        if image_fetcher is None:
            image_fetcher = make_image_fetcher(fetcher, config.fetch.max_image_bytes)
        if identity is None:
            identity = GoogleIdentityVerifier(
                http_client,
                client_id=config.admin.client_id,
                admins=config.admin.admins,
                timeout_seconds=config.fetch.timeout_seconds,
            )

        thumbnails = ThumbnailService(store, image_fetcher, size=config.thumbnail.size)
        verifier = SlowVerifier(fetcher, MentionEnricher(thumbnails), config.fetch.max_source_bytes)
        mentions = MentionService(store, verifier, thumbnails, config.targets.allowed_hosts)

        logger.info(f"Initialized with {config.store.backend} store, namespace {config.store.namespace!r}.")
        return cls(
            config=config,
            store=store,
            http_client=http_client,
            mentions=mentions,
            thumbnails=thumbnails,
            sent=SentNotificationService(store),
            identity=identity,
        )

    async def close(self) -> None:
        await self.http_client.aclose()
        await self.store.close()

    async def __aenter__(self) -> "AppContext":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
