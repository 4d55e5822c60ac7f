# ============================================================================
# PRODUCT RECORD REPOSITORY
# ============================================================================
# STATUS: Infrastructure - PostgreSQL record store
# PURPOSE: Write / clear the display URL and storage location of a product row
# EXPORTS: ProductRecordRepository
# INTERFACES: IRecordStore
# DEPENDENCIES: psycopg (v3)
# ============================================================================

"""
Product Record Repository.

The product table belongs to another system; this app only writes the
two display columns of rows that already exist. Table and column names
come from DatabaseConfig.
"""

from typing import Optional

from psycopg import sql

from exceptions import ResourceNotFoundError
from interfaces.repository import IRecordStore
from util_logger import LoggerFactory, ComponentType

from .postgresql import PostgreSQLRepository

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ProductRecordRepository")


class ProductRecordRepository(PostgreSQLRepository, IRecordStore):
    """PostgreSQL implementation of IRecordStore."""

    def _set_display_fields(self) -> sql.Composed:
        cfg = self.config
        return sql.SQL("UPDATE {table} SET {url} = %s, {location} = %s WHERE {id} = %s").format(
            table=self._table(cfg.record_table),
            url=sql.Identifier(cfg.record_url_column),
            location=sql.Identifier(cfg.record_location_column),
            id=sql.Identifier(cfg.record_id_column),
        )

    def update_display_fields(
        self,
        resource_id: str,
        display_url: str,
        storage_location: str,
        timeout: Optional[float] = None
    ) -> None:
        """
        Write the serving URL and storage key to the product row.

        Raises:
            ResourceNotFoundError: No row has this id
            RuntimeError: Database failure
        """
        rowcount = self._execute_query(
            self._set_display_fields(),
            (display_url, storage_location, resource_id),
            timeout=timeout
        )
        if not rowcount:
            raise ResourceNotFoundError(
                f"No {self.config.record_table} row with {self.config.record_id_column}={resource_id}"
            )
        logger.info(f"✅ Updated display fields for resource {resource_id}")

    def clear_display_fields(self, resource_id: str, timeout: Optional[float] = None) -> bool:
        """Set both display columns to NULL. False when no row matched."""
        rowcount = self._execute_query(
            self._set_display_fields(),
            (None, None, resource_id),
            timeout=timeout
        )
        if rowcount:
            logger.info(f"✅ Cleared display fields for resource {resource_id}")
            return True
        logger.warning(f"⚠️ No row to clear for resource {resource_id}")
        return False
