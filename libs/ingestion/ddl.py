# =============================================================================
# DDL Builder
# =============================================================================
# Maps an InferredSchema onto a SQLAlchemy Table and its conditional
# CREATE TABLE statement.
# =============================================================================

from typing import Optional

from sqlalchemy import BigInteger, Boolean, Column, Date, MetaData, Numeric, Table, Text
from sqlalchemy.schema import CreateTable

from libs.models import ColumnType, InferredSchema
from libs.tabular_utils.headers import is_valid_identifier

__all__ = ["COLUMN_TYPE_MAP", "build_table", "create_table_statement"]

COLUMN_TYPE_MAP = {
    ColumnType.TEXT: Text,
    ColumnType.INTEGER: BigInteger,
    ColumnType.DECIMAL: Numeric,
    ColumnType.DATE: Date,
    ColumnType.BOOLEAN: Boolean,
}


def build_table(
    name: str,
    schema: InferredSchema,
    db_schema: Optional[str] = None,
    metadata: Optional[MetaData] = None,
) -> Table:
    """
    Build a SQLAlchemy Table for the inferred columns, in header order.

    All columns are nullable; no primary key is added so the table mirrors
    the uploaded file one-to-one.

    Raises:
        ValueError: If the table name is not a valid identifier
    """
    if not is_valid_identifier(name):
        raise ValueError(f"Invalid table name: '{name}'")

    columns = [
        Column(spec.name, COLUMN_TYPE_MAP[spec.type](), nullable=True)
        for spec in schema.columns
    ]
    return Table(name, metadata or MetaData(), *columns, schema=db_schema)


def create_table_statement(table: Table) -> CreateTable:
    """``CREATE TABLE IF NOT EXISTS`` for ``table``."""
    return CreateTable(table, if_not_exists=True)
