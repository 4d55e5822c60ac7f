# ============================================================================
# POSTGRESQL REPOSITORY BASE
# ============================================================================
# STATUS: Infrastructure - PostgreSQL access
# PURPOSE: Connection handling and safe query execution shared by the record
#          store and the serving handle repository
# EXPORTS: PostgreSQLRepository
# DEPENDENCIES: psycopg (v3), azure-identity
# ============================================================================

"""
PostgreSQL Repository Base.

Every query is a ``psycopg.sql.Composed`` so table and column names,
which come from configuration, are always quoted identifiers and values
are always bound parameters.

Connection lifecycle is one connection per call: Azure Functions
instances are short-lived and the queries are single statements.

Authentication:
    - POSTGRES_PASSWORD
    - USE_MANAGED_IDENTITY=true: Entra ID access token from
      DefaultAzureCredential used as the password

Every statement runs under a libpq statement_timeout: DB_STATEMENT_TIMEOUT,
or less when the calling pipeline has less of its deadline left.
"""

from contextlib import contextmanager
from typing import Any, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from azure.identity import DefaultAzureCredential

from config import DatabaseConfig
from config.defaults import DatabaseDefaults
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "PostgreSQLRepository")


class PostgreSQLRepository:
    """
    Base class for PostgreSQL repositories.

    Subclasses build sql.Composed statements and run them through
    _execute_query(), which commits every statement and wraps driver
    errors in RuntimeError with the original chained.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.schema_name = config.db_schema
        self._credential: Optional[DefaultAzureCredential] = None
        logger.info(f"✅ {type(self).__name__} initialized with schema: {self.schema_name}")

    def _get_password(self) -> Optional[str]:
        """Configured password, or a fresh Entra ID token with managed identity."""
        if not self.config.use_managed_identity:
            return self.config.password

        if self._credential is None:
            if self.config.managed_identity_client_id:
                self._credential = DefaultAzureCredential(
                    managed_identity_client_id=self.config.managed_identity_client_id
                )
            else:
                self._credential = DefaultAzureCredential()

        token = self._credential.get_token(DatabaseDefaults.AAD_TOKEN_SCOPE).token
        logger.debug("✅ PostgreSQL access token acquired")
        return token

    @contextmanager
    def _get_connection(self, timeout: Optional[float] = None):
        """
        Context manager for PostgreSQL connections.

        Rolls back on error and always closes the connection. timeout
        (the caller's remaining budget) caps the connect timeout and the
        session statement_timeout.

        Yields:
            psycopg.Connection with dict rows, autocommit off
        """
        conn = None
        try:
            logger.debug(f"🔗 Connecting to PostgreSQL host: {self.config.host}")
            conn = psycopg.connect(self.config.conninfo(self._get_password(), timeout), row_factory=dict_row)
            yield conn
        except psycopg.Error as e:
            logger.error(f"❌ PostgreSQL connection error: {type(e).__name__}: {e}")
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                conn.close()

    def _table(self, table: str) -> sql.Composed:
        """Schema-qualified table identifier."""
        return sql.SQL("{}.{}").format(sql.Identifier(self.schema_name), sql.Identifier(table))

    def _execute_query(
        self,
        query: sql.Composed,
        params: Optional[Tuple] = None,
        fetch: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> Optional[Any]:
        """
        Execute a query and commit.

        Args:
            query: Statement built with psycopg.sql composition
            params: Values for %s placeholders
            fetch: None | 'one' | 'all'
            timeout: Caller's remaining budget in seconds

        Returns:
            - fetch='one' / 'all': row dict / list of row dicts
            - DML without fetch: affected row count
            - otherwise None

        Raises:
            TypeError: query is not sql.Composed
            ValueError: Unknown fetch mode
            RuntimeError: Any database failure (psycopg error chained)
        """
        if not isinstance(query, sql.Composed):
            raise TypeError(f"❌ SECURITY: Query must be sql.Composed, got {type(query)}")

        if fetch and fetch not in ('one', 'all'):
            raise ValueError(f"❌ INVALID FETCH MODE: {fetch}")

        try:
            with self._get_connection(timeout) as conn:
                with conn.cursor() as cursor:
                    cursor.execute(query, params)

                    result = None
                    if fetch == 'one':
                        result = cursor.fetchone()
                    elif fetch == 'all':
                        result = cursor.fetchall()

                    conn.commit()

                    if fetch:
                        return result
                    if cursor.description is None:
                        return cursor.rowcount
                    return None

        except psycopg.Error as e:
            logger.error(
                f"❌ QUERY FAILED: {e}",
                extra={'custom_dimensions': {
                    'sqlstate': getattr(e, 'sqlstate', None),
                    'error_type': type(e).__name__,
                }}
            )
            raise RuntimeError(f"Database operation failed: {e}") from e
