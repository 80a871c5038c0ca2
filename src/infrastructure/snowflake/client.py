"""
Snowflake connection management and document stores.

Provides the connection factory plus the two DocumentStore implementations:
- SnowflakeDocumentStore: each collection is a table of (id, doc VARIANT)
  rows, queried with Snowflake's semi-structured path syntax.
- InMemoryDocumentStore: dictionaries in process memory, for local
  development and tests. Optionally seeded from a JSON export.

Most code never touches this module directly - it goes through
RecordRepository, which turns documents into domain entities.
"""

import base64
import copy
import json
import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

from src.core.insights.errors import MalformedRecordError

from .repositories.records import Document, DocumentStore, FieldFilter, SnowflakeConfig

logger = logging.getLogger(__name__)

COLLECTIONS = ("locations", "seasons", "programs", "bookings", "lessons", "pricing")

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(config: SnowflakeConfig) -> bytes:
    """
    Load the private key for key-pair authentication.

    Snowflake requires the private key as DER bytes, not a file path. The
    PEM comes from a file locally, or from a base64 environment variable
    in deployments where mounting files is awkward.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    if config.private_key_path:
        with open(config.private_key_path, 'rb') as key_file:
            pem = key_file.read()
    else:
        pem = base64.b64decode(config.private_key_base64)

    private_key = serialization.load_pem_private_key(
        pem,
        password=None,  # No password on the key
        backend=default_backend()
    )

    # Convert to the format Snowflake expects
    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[Any, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If a private key (path or base64) is set, uses key-pair auth
    - Otherwise, uses password auth

    Using a context manager ensures connections are always closed,
    even if an exception occurs.

    Usage:
        with get_snowflake_connection(config) as conn:
            store = SnowflakeDocumentStore(conn)
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    connect_params = {
        'account': config.account,
        'user': config.user,
        'database': config.database,
        'schema': config.schema,
        'warehouse': config.warehouse,
        'role': config.role,
        'client_session_keep_alive': True,
    }

    if config.private_key_path or config.private_key_base64:
        logger.info("Using key-pair authentication for Snowflake")
        connect_params['private_key'] = _load_private_key(config)
    elif config.password:
        logger.info("Using password authentication for Snowflake")
        connect_params['password'] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or a private key must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e

    logger.debug(
        "Established Snowflake connection",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Snowflake Document Store
# ---------------------------------------------------------------------------

def _variant_cast(value: Any) -> str:
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def _compile_filter(field_filter: FieldFilter) -> tuple[str, list]:
    """Turn one predicate into a WHERE fragment and its parameters."""
    if not _FIELD_NAME.match(field_filter.field):
        raise ValueError(f"Invalid document field name: {field_filter.field!r}")

    path = f'doc:"{field_filter.field}"'

    if field_filter.op == "==":
        return f"{path}::{_variant_cast(field_filter.value)} = %s", [field_filter.value]

    values = list(field_filter.value)
    if not values:
        return "FALSE", []
    placeholders = ", ".join(["%s"] * len(values))
    return f"{path}::{_variant_cast(values[0])} IN ({placeholders})", values


def _table_for(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection!r}")
    return collection.upper()


class SnowflakeDocumentStore:
    """
    Document store backed by Snowflake VARIANT tables.

    Each collection is a table `(id STRING, doc VARIANT)` that the
    booking platform's export job keeps in sync. Reads only.
    """

    def __init__(self, connection) -> None:
        self._conn = connection

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        limit: Optional[int] = None,
    ) -> list[Document]:
        clauses = []
        params: list = []
        for field_filter in filters:
            clause, clause_params = _compile_filter(field_filter)
            clauses.append(clause)
            params.extend(clause_params)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"SELECT id, doc FROM {_table_for(collection)} {where} ORDER BY id"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)

        logger.debug(
            "Querying documents",
            extra={"collection": collection, "filters": len(clauses)}
        )

        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, tuple(params))
            rows = cursor.fetchall()
        finally:
            cursor.close()

        return [self._build_document(collection, row) for row in rows]

    def get(self, collection: str, document_id: str) -> Optional[Document]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(
                f"SELECT id, doc FROM {_table_for(collection)} WHERE id = %s",
                (document_id,),
            )
            row = cursor.fetchone()
        finally:
            cursor.close()

        if not row:
            return None
        return self._build_document(collection, row)

    def ping(self) -> bool:
        cursor = self._conn.cursor()
        try:
            cursor.execute("SELECT 1")
            return cursor.fetchone() is not None
        finally:
            cursor.close()

    def _build_document(self, collection: str, row) -> Document:
        """
        Build a Document from an (id, doc) row.

        snowflake-connector-python returns VARIANT columns as JSON strings;
        other drivers hand back parsed dicts. Both are accepted.
        """
        document_id, body = row[0], row[1]

        if isinstance(body, str):
            try:
                body = json.loads(body)
            except json.JSONDecodeError as e:
                raise MalformedRecordError(collection, document_id, f"invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise MalformedRecordError(collection, document_id, "document body is not a JSON object")

        return Document(id=str(document_id), data=body)


# ---------------------------------------------------------------------------
# In-Memory Document Store for Local Development
# ---------------------------------------------------------------------------

class InMemoryDocumentStore:
    """
    Document store held in process memory.

    Applies the same predicate semantics and id ordering as the Snowflake
    store, including the limit on id-in-set values. Not suitable for
    production, but perfect for:
    - Local development (seed from a JSON export)
    - Unit tests
    - CI/CD environments
    """

    def __init__(self, collections: Optional[dict[str, dict[str, dict]]] = None) -> None:
        # {collection: {document_id: document_body}}
        self._collections: dict[str, dict[str, dict]] = {name: {} for name in COLLECTIONS}
        for name, documents in (collections or {}).items():
            self.load(name, documents)

        # Every query issued, for test assertions
        self.query_log: list[tuple[str, tuple[FieldFilter, ...]]] = []

        logger.info("Initialized in-memory document store")

    @classmethod
    def from_seed_file(cls, path: str) -> "InMemoryDocumentStore":
        """
        Load a JSON export shaped {collection: {document_id: document}}.
        """
        with open(Path(path), 'r', encoding='utf-8') as seed_file:
            collections = json.load(seed_file)

        store = cls(collections)
        logger.info(
            "Seeded in-memory document store",
            extra={
                "path": str(path),
                "documents": {name: len(docs) for name, docs in store._collections.items()},
            }
        )
        return store

    def load(self, collection: str, documents: dict[str, dict]) -> None:
        """Add or replace documents (test and seed setup only)."""
        _table_for(collection)
        self._collections[collection].update(copy.deepcopy(documents))

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        limit: Optional[int] = None,
    ) -> list[Document]:
        _table_for(collection)
        self.query_log.append((collection, tuple(filters)))

        documents = self._collections[collection]
        matches = [
            Document(id=document_id, data=copy.deepcopy(body))
            for document_id, body in sorted(documents.items())
            if all(self._matches(body, field_filter) for field_filter in filters)
        ]
        return matches if limit is None else matches[:limit]

    def get(self, collection: str, document_id: str) -> Optional[Document]:
        _table_for(collection)
        body = self._collections[collection].get(document_id)
        if body is None:
            return None
        return Document(id=document_id, data=copy.deepcopy(body))

    def ping(self) -> bool:
        return True

    def _matches(self, body: dict, field_filter: FieldFilter) -> bool:
        if field_filter.field not in body:
            return False
        value = body[field_filter.field]
        if field_filter.op == "==":
            return value == field_filter.value
        return value in field_filter.value


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_document_store(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
    seed_path: Optional[str] = None,
) -> Generator[DocumentStore, None, None]:
    """
    Create a document store based on configuration.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, use an in-memory store
        seed_path: JSON export to load into the in-memory store

    Yields:
        DocumentStore implementation (Snowflake or in-memory)
    """
    if mock_mode:
        if seed_path:
            yield InMemoryDocumentStore.from_seed_file(seed_path)
        else:
            yield InMemoryDocumentStore()
        return

    if config is None:
        raise ValueError("config is required when not in mock mode")

    with get_snowflake_connection(config) as conn:
        yield SnowflakeDocumentStore(conn)
