"""
FastAPI dependency injection.

Dependencies provide instances of stores, repositories and services to
route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden for testing
- Configuration is centralized
- Resource lifecycle (connections) is managed properly

Each dependency is a function that FastAPI calls when needed. The reporting
service is built per request around an explicitly constructed repository;
nothing in `core` reaches for a process-wide store.
"""

import logging
from typing import Annotated, Generator

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.insights.service import BusinessIntelligenceService
from ..infrastructure.snowflake.client import InMemoryDocumentStore, create_document_store
from ..infrastructure.snowflake.repositories.records import (
    DocumentStore,
    RecordRepository,
    SnowflakeConfig,
)

logger = logging.getLogger(__name__)

# Shared in-memory store (mock mode only), so seeded data lives for the process
_mock_document_store = None


def snowflake_config(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


# ---------------------------------------------------------------------------
# Store and Repository Dependencies
# ---------------------------------------------------------------------------

def get_document_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[DocumentStore, None, None]:
    """
    Provide a document store for the duration of one request.

    This is a generator function (yields instead of returns) because
    we need to manage the connection lifecycle:
    1. Open connection
    2. Yield store (FastAPI injects it)
    3. Close connection (cleanup after request)

    In mock mode, we reuse the same in-memory store across requests
    so that seeded data persists for the life of the process.
    """
    global _mock_document_store

    if settings.store_mock_mode:
        if _mock_document_store is None:
            if settings.store_seed_path:
                _mock_document_store = InMemoryDocumentStore.from_seed_file(settings.store_seed_path)
            else:
                _mock_document_store = InMemoryDocumentStore()
            logger.info("Created shared in-memory document store")

        logger.debug("Using shared in-memory document store")
        yield _mock_document_store
    else:
        with create_document_store(config=snowflake_config(settings)) as store:
            logger.debug("Created Snowflake document store")
            yield store


def get_record_repository(
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> RecordRepository:
    return RecordRepository(store)


def get_insights_service(
    repository: Annotated[RecordRepository, Depends(get_record_repository)],
) -> BusinessIntelligenceService:
    """
    Provide the reporting service.

    The service is stateless, so we create a new instance per request
    around that request's repository.
    """
    return BusinessIntelligenceService(repository=repository)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
DocumentStoreDep = Annotated[DocumentStore, Depends(get_document_store)]
RecordRepositoryDep = Annotated[RecordRepository, Depends(get_record_repository)]
InsightsServiceDep = Annotated[BusinessIntelligenceService, Depends(get_insights_service)]
