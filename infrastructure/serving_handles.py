# ============================================================================
# SERVING HANDLE REPOSITORY
# ============================================================================
# STATUS: Infrastructure - PostgreSQL served-URL table
# PURPOSE: Mint, revoke and resolve serving handles for stored images
# EXPORTS: ServingHandleRepository
# INTERFACES: IServingHandleProvider
# DEPENDENCIES: psycopg (v3)
# ============================================================================

"""
Serving Handle Repository.

A serving handle is a random token bound to one storage key, with the
display size and transport flag it was minted with and an expiry.
The public serving URL embeds the token; GET /api/img/{token} resolves
it and redirects to a short-lived read URL for the blob.

Table layout (created by ensure_table()):

    storage_key  text PRIMARY KEY
    token        text UNIQUE NOT NULL
    size         integer NOT NULL
    secure       boolean NOT NULL
    created_at   timestamptz NOT NULL
    expires_at   timestamptz NOT NULL

One handle per key: minting again replaces the token, so the previous
URL for that key stops resolving.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from psycopg import sql

from config import DatabaseConfig, ServingConfig
from core.models.image import ServingHandle
from core.serving_url import build_serving_url
from exceptions import ResourceNotFoundError
from interfaces.repository import IObjectStore, IServingHandleProvider
from util_logger import LoggerFactory, ComponentType

from .postgresql import PostgreSQLRepository

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ServingHandleRepository")


TOKEN_BYTES = 24


class ServingHandleRepository(PostgreSQLRepository, IServingHandleProvider):
    """PostgreSQL implementation of IServingHandleProvider."""

    def __init__(self, config: DatabaseConfig, serving: ServingConfig, object_store: IObjectStore):
        super().__init__(config)
        self.serving = serving
        self.object_store = object_store

    def ensure_table(self) -> None:
        """Create the handle table if it does not exist."""
        query = sql.SQL("""
            CREATE TABLE IF NOT EXISTS {table} (
                storage_key text PRIMARY KEY,
                token text NOT NULL UNIQUE,
                size integer NOT NULL,
                secure boolean NOT NULL,
                created_at timestamptz NOT NULL DEFAULT now(),
                expires_at timestamptz NOT NULL
            )
        """).format(table=self._table(self.config.handle_table))
        self._execute_query(query)
        logger.info(f"✅ Serving handle table ready: {self.schema_name}.{self.config.handle_table}")

    def mint(self, storage_key: str, size: int, secure: bool, timeout: Optional[float] = None) -> str:
        """
        Mint (or re-mint) the serving handle for storage_key.

        timeout bounds both the existence check and the upsert.

        Raises:
            ResourceNotFoundError: No blob at storage_key
            RuntimeError: Database failure
        """
        if not self.object_store.object_exists(storage_key, timeout=timeout):
            raise ResourceNotFoundError(f"No stored object at '{storage_key}'")

        token = secrets.token_urlsafe(TOKEN_BYTES)
        expires_at = datetime.now(timezone.utc) + timedelta(hours=self.serving.handle_ttl_hours)

        query = sql.SQL("""
            INSERT INTO {table} (storage_key, token, size, secure, created_at, expires_at)
            VALUES (%s, %s, %s, %s, now(), %s)
            ON CONFLICT (storage_key) DO UPDATE SET
                token = EXCLUDED.token,
                size = EXCLUDED.size,
                secure = EXCLUDED.secure,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at
            RETURNING token
        """).format(table=self._table(self.config.handle_table))

        row = self._execute_query(
            query, (storage_key, token, size, secure, expires_at), fetch='one', timeout=timeout
        )
        if not row:
            raise RuntimeError(f"Handle upsert returned no row for '{storage_key}'")

        url = build_serving_url(self.serving.base_url, row['token'], size, secure)
        logger.info(f"✅ Minted serving handle for {storage_key} (expires {expires_at.isoformat()})")
        return url

    def revoke(self, storage_key: str, timeout: Optional[float] = None) -> bool:
        """Delete the handle for storage_key. False when none existed."""
        query = sql.SQL("DELETE FROM {table} WHERE storage_key = %s").format(
            table=self._table(self.config.handle_table)
        )
        rowcount = self._execute_query(query, (storage_key,), timeout=timeout)
        if rowcount:
            logger.info(f"✅ Revoked serving handle for {storage_key}")
            return True
        logger.info(f"No serving handle to revoke for {storage_key}")
        return False

    def resolve(self, token: str) -> Optional[ServingHandle]:
        """Live handle for token, None when unknown or expired."""
        query = sql.SQL("""
            SELECT storage_key, token, size, secure, created_at, expires_at
            FROM {table}
            WHERE token = %s AND expires_at > now()
        """).format(table=self._table(self.config.handle_table))

        row = self._execute_query(query, (token,), fetch='one')
        if not row:
            return None
        return ServingHandle(
            token=row['token'],
            storage_key=row['storage_key'],
            size=row['size'],
            secure=row['secure'],
            created_at=row['created_at'],
            expires_at=row['expires_at'],
        )
