"""
Core data models for the gateway admin client.
Everything is a plain dataclass: transient, recomputed per operation,
and serializable so the CLI and the export adapters can dump it directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional
import json


DEFAULT_SCHEMA = "public"


# ─────────────────────────────────────────────
# Schema primitives
# ─────────────────────────────────────────────

class ColumnType(str, Enum):
    """Types that can be inferred from a sampled JSON value."""
    TEXT        = "text"
    INTEGER     = "integer"
    NUMERIC     = "numeric"
    BOOLEAN     = "boolean"
    UUID        = "uuid"
    TIMESTAMPTZ = "timestamp with time zone"
    JSONB       = "jsonb"


class TableKind(str, Enum):
    BASE_TABLE = "BASE TABLE"


@dataclass
class TableDescriptor:
    name: str
    schema_name: str = DEFAULT_SCHEMA
    kind: TableKind = TableKind.BASE_TABLE

    def to_dict(self) -> dict:
        return {
            "table_name": self.name,
            "table_schema": self.schema_name,
            "table_type": self.kind.value,
        }


@dataclass
class ColumnDescriptor:
    name: str
    inferred_type: ColumnType | str
    position: int
    nullable: str = "YES"                  # never verified against the catalog
    default_expression: Optional[str] = None
    max_length: Optional[int] = None       # only set by imported schema documents
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None

    @property
    def type_name(self) -> str:
        if isinstance(self.inferred_type, ColumnType):
            return self.inferred_type.value
        return str(self.inferred_type)

    def to_dict(self) -> dict:
        """Serialize using the catalog-style keys the export documents carry."""
        out = {
            "column_name": self.name,
            "data_type": self.type_name,
            "is_nullable": self.nullable,
            "column_default": self.default_expression,
            "ordinal_position": self.position,
        }
        if self.max_length is not None:
            out["character_maximum_length"] = self.max_length
        if self.numeric_precision is not None:
            out["numeric_precision"] = self.numeric_precision
        if self.numeric_scale is not None:
            out["numeric_scale"] = self.numeric_scale
        return out

    @classmethod
    def from_dict(cls, col: dict, position: int = 1) -> ColumnDescriptor:
        """Rebuild a descriptor from an export document entry.

        Unknown type names are kept verbatim; an export may carry types that
        inference never produces (varchar, int8, ...).
        """
        raw_type = col.get("data_type") or col.get("type") or ColumnType.TEXT.value
        try:
            col_type: ColumnType | str = ColumnType(str(raw_type).lower())
        except ValueError:
            col_type = str(raw_type)

        return cls(
            name=col["column_name"] if "column_name" in col else col["name"],
            inferred_type=col_type,
            position=col.get("ordinal_position", position),
            nullable=col.get("is_nullable", "YES"),
            default_expression=col.get("column_default"),
            max_length=col.get("character_maximum_length"),
            numeric_precision=col.get("numeric_precision"),
            numeric_scale=col.get("numeric_scale"),
        )


@dataclass
class RowSet:
    columns: list[ColumnDescriptor]
    rows: list[dict[str, Any]]
    total_count: int                       # from a separate count request, may lag writes

    def to_dict(self) -> dict:
        return {
            "columns": [c.to_dict() for c in self.columns],
            "rows": self.rows,
            "total_count": self.total_count,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)


# ─────────────────────────────────────────────
# Result wrappers
# Partial failure is an expected outcome for discovery, import and export,
# so these carry their errors instead of raising.
# ─────────────────────────────────────────────

@dataclass
class ProbeFailure:
    strategy: str
    target: str
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DiscoveryResult:
    tables: list[TableDescriptor] = field(default_factory=list)
    strategy: Optional[str] = None         # name of the strategy that produced `tables`
    failures: list[ProbeFailure] = field(default_factory=list)
    probes_used: int = 0
    budget_exhausted: bool = False
    unreachable: bool = False

    @property
    def table_names(self) -> list[str]:
        return [t.name for t in self.tables]

    def to_dict(self) -> dict:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "strategy": self.strategy,
            "failures": [f.to_dict() for f in self.failures],
            "probes_used": self.probes_used,
            "budget_exhausted": self.budget_exhausted,
            "unreachable": self.unreachable,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)


@dataclass
class ExportResult:
    content: str
    format: str
    tables_exported: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class ImportResult:
    tables_processed: int = 0
    rows_inserted: int = 0
    statements_executed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)
