# =============================================================================
# Table Provisioner
# =============================================================================
# Ensures the destination table exists before rows are loaded. Creation is
# idempotent (CREATE TABLE IF NOT EXISTS); existing tables are never altered.
# =============================================================================

import logging
from typing import Optional

from sqlalchemy import Table
from sqlalchemy.exc import SQLAlchemyError

from libs.models import InferredSchema

from .ddl import build_table, create_table_statement
from .errors import ProvisioningError

__all__ = ["TableProvisioner"]

logger = logging.getLogger(__name__)


class TableProvisioner:
    """
    Creates destination tables from inferred schemas.

    ``database`` is anything exposing ``execute_ddl``, ``table_exists`` and
    ``get_table_columns`` (see PostgresResource).

    Two runs provisioning the same table concurrently both issue the
    conditional create; if the database still reports a duplicate (Postgres
    can raise on its catalog uniqueness constraint), the error is ignored
    once the table is confirmed to exist.
    """

    def __init__(self, database, log=None):
        self.database = database
        self.log = log or logger

    def ensure_table(
        self,
        name: str,
        schema: InferredSchema,
        db_schema: Optional[str] = None,
    ) -> Table:
        """
        Create ``name`` with the inferred columns unless it already exists.

        Args:
            name: Destination table name (valid identifier)
            schema: Inferred column schema
            db_schema: Database schema (namespace) for the table

        Returns:
            The Table object rows should be inserted through.

        Raises:
            ProvisioningError: If the table cannot be created
        """
        try:
            table = build_table(name, schema, db_schema=db_schema)
        except ValueError as e:
            raise ProvisioningError(str(e)) from e

        qualified = f"{db_schema}.{name}" if db_schema else name

        try:
            existing = self.database.get_table_columns(name, db_schema)
            if existing is not None:
                self._warn_on_mismatch(qualified, schema, existing)
                return table

            self.database.execute_ddl(create_table_statement(table))
            self.log.info(f"Ensured table {qualified} with {len(schema)} columns")
            return table

        except SQLAlchemyError as e:
            if self._exists_after_race(name, db_schema):
                self.log.info(f"Table {qualified} was created concurrently, continuing")
                return table
            raise ProvisioningError(f"Failed to create table {qualified}: {e}") from e

    def _exists_after_race(self, name: str, db_schema: Optional[str]) -> bool:
        try:
            return self.database.table_exists(name, db_schema)
        except SQLAlchemyError:
            return False

    def _warn_on_mismatch(self, qualified: str, schema: InferredSchema, existing: dict) -> None:
        # Existing tables are never altered; mismatches surface as per-batch
        # insert failures
        expected = set(schema.names)
        actual = set(existing)
        if expected != actual:
            missing = sorted(expected - actual)
            extra = sorted(actual - expected)
            self.log.warning(
                f"Table {qualified} already exists with different columns "
                f"(missing: {missing}, extra: {extra}); inserts may fail"
            )
        else:
            self.log.info(f"Table {qualified} already exists, reusing it")
