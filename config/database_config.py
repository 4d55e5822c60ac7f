# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================
# STATUS: Core
# PURPOSE: PostgreSQL connection plus product record / serving handle tables
# EXPORTS: DatabaseConfig
# DEPENDENCIES: pydantic, psycopg (conninfo quoting)
# SOURCE: POSTGRES_* environment variables, RECORD_*, HANDLE_TABLE
# ============================================================================

"""
PostgreSQL Database Configuration.

One database holds two things this app touches:
    - the product record table (owned elsewhere, two columns written here)
    - the serving handle table (owned by this app)

Table and column names are configuration because the product table
belongs to another system.
"""

import math
import os
import re
from typing import Optional

from psycopg.conninfo import make_conninfo
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .defaults import DatabaseDefaults


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class DatabaseConfig(BaseModel):
    """PostgreSQL configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default=DatabaseDefaults.HOST)
    port: int = Field(default=DatabaseDefaults.PORT, ge=1, le=65535)
    database: str = Field(default=DatabaseDefaults.DATABASE)
    user: str = Field(default=DatabaseDefaults.USER)
    password: Optional[str] = Field(default=None, repr=False)

    use_managed_identity: bool = Field(
        default=False,
        description="Use an Entra ID access token (DefaultAzureCredential) as the password"
    )
    managed_identity_client_id: Optional[str] = Field(
        default=None,
        description="Client id of a user-assigned managed identity"
    )

    connection_timeout_seconds: int = Field(
        default=DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS, ge=1, le=300
    )

    statement_timeout_seconds: float = Field(
        default=DatabaseDefaults.STATEMENT_TIMEOUT_SECONDS, gt=0, le=600
    )

    db_schema: str = Field(default=DatabaseDefaults.SCHEMA)

    record_table: str = Field(default=DatabaseDefaults.RECORD_TABLE)
    record_id_column: str = Field(default=DatabaseDefaults.RECORD_ID_COLUMN)
    record_url_column: str = Field(default=DatabaseDefaults.RECORD_URL_COLUMN)
    record_location_column: str = Field(default=DatabaseDefaults.RECORD_LOCATION_COLUMN)

    handle_table: str = Field(default=DatabaseDefaults.HANDLE_TABLE)

    @field_validator(
        'db_schema', 'record_table', 'record_id_column', 'record_url_column',
        'record_location_column', 'handle_table'
    )
    @classmethod
    def plain_identifier(cls, v: str) -> str:
        if not _IDENTIFIER.match(v):
            raise ValueError(f"'{v}' is not a plain SQL identifier")
        return v

    def conninfo(self, password: Optional[str] = None, timeout_seconds: Optional[float] = None) -> str:
        """
        psycopg connection string.

        Values are quoted by libpq rules, so passwords and tokens may hold
        spaces, quotes and backslashes.

        Args:
            password: Overrides the configured password (managed identity token)
            timeout_seconds: Caller's remaining budget; caps both the connect
                timeout and the per-statement timeout
        """
        pwd = password if password is not None else self.password
        budget = float(self.statement_timeout_seconds)
        if timeout_seconds is not None:
            budget = min(budget, timeout_seconds)

        params = {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.user,
            "connect_timeout": max(1, math.ceil(min(self.connection_timeout_seconds, budget))),
            "sslmode": "require" if self.use_managed_identity else "prefer",
            "options": f"-c statement_timeout={max(1, math.ceil(budget * 1000))}",
        }
        if pwd:
            params["password"] = pwd
        return make_conninfo(**params)

    def debug_dict(self) -> dict:
        """Debug output with masked password."""
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": "***MASKED***" if self.password else None,
            "managed_identity": self.use_managed_identity,
            "managed_identity_client_id": self.managed_identity_client_id[:8] + "..." if self.managed_identity_client_id else None,
            "db_schema": self.db_schema,
            "record_table": self.record_table,
            "handle_table": self.handle_table,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            host=os.environ.get("POSTGRES_HOST", DatabaseDefaults.HOST),
            port=int(os.environ.get("POSTGRES_PORT", str(DatabaseDefaults.PORT))),
            database=os.environ.get("POSTGRES_DATABASE", DatabaseDefaults.DATABASE),
            user=os.environ.get("POSTGRES_USER", DatabaseDefaults.USER),
            password=os.environ.get("POSTGRES_PASSWORD"),
            use_managed_identity=os.environ.get("USE_MANAGED_IDENTITY", "false").lower() == "true",
            managed_identity_client_id=os.environ.get("MANAGED_IDENTITY_CLIENT_ID"),
            connection_timeout_seconds=int(os.environ.get(
                "DB_CONNECTION_TIMEOUT", str(DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS)
            )),
            statement_timeout_seconds=float(os.environ.get(
                "DB_STATEMENT_TIMEOUT", str(DatabaseDefaults.STATEMENT_TIMEOUT_SECONDS)
            )),
            db_schema=os.environ.get("APP_SCHEMA", DatabaseDefaults.SCHEMA),
            record_table=os.environ.get("RECORD_TABLE", DatabaseDefaults.RECORD_TABLE),
            record_id_column=os.environ.get("RECORD_ID_COLUMN", DatabaseDefaults.RECORD_ID_COLUMN),
            record_url_column=os.environ.get("RECORD_URL_COLUMN", DatabaseDefaults.RECORD_URL_COLUMN),
            record_location_column=os.environ.get("RECORD_LOCATION_COLUMN", DatabaseDefaults.RECORD_LOCATION_COLUMN),
            handle_table=os.environ.get("HANDLE_TABLE", DatabaseDefaults.HANDLE_TABLE),
        )
