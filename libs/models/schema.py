# =============================================================================
# Inferred Schema Models
# =============================================================================
# Column types and the ordered column list derived from an uploaded file's
# header row and a sample of its data rows.
# =============================================================================

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

__all__ = ["ColumnType", "ColumnSpec", "InferredSchema"]


class ColumnType(str, Enum):
    """Storage type of a destination column."""

    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    BOOLEAN = "boolean"


class ColumnSpec(BaseModel):
    """
    One destination column.

    Attributes:
        name: Normalized, Postgres-safe column identifier
        source_header: Header cell text as it appeared in the file
        type: Inferred storage type
        date_format: strptime format shared by every sampled value (date columns only)
    """

    name: str = Field(..., min_length=1, max_length=63)
    source_header: str = Field("", description="Original header cell")
    type: ColumnType = Field(ColumnType.TEXT)
    date_format: Optional[str] = Field(None, description="strptime format for date columns")


class InferredSchema(BaseModel):
    """
    Ordered column-name → storage-type mapping for a target table.

    Column order matches the header order of the source file and names are
    unique.
    """

    columns: list[ColumnSpec] = Field(..., min_length=1)

    @field_validator("columns")
    @classmethod
    def validate_unique_names(cls, v: list[ColumnSpec]) -> list[ColumnSpec]:
        seen: set[str] = set()
        for column in v:
            if column.name in seen:
                raise ValueError(f"Duplicate column name: {column.name}")
            seen.add(column.name)
        return v

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def types(self) -> dict[str, ColumnType]:
        """Column name → type, in column order."""
        return {c.name: c.type for c in self.columns}

    def __len__(self) -> int:
        return len(self.columns)
