"""
Data models for database schema representation
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class ColumnDataType(Enum):
    """Canonical, engine independent column types"""
    UNKNOWN = "UNKNOWN"
    STRING = "STRING"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ColumnInfo:
    """Information about a single database column"""
    name: str
    data_type: ColumnDataType
    is_nullable: bool
    default: Optional[str] = None
    native_type: str = field(default='', compare=False)

    @property
    def has_default(self) -> bool:
        return self.default is not None


@dataclass(frozen=True)
class ForeignKeyInfo:
    """A "child depends on parent" edge between two tables"""
    constraint_name: str
    table_name: str
    column_name: str
    foreign_table_name: str
    foreign_column_name: str


@dataclass(frozen=True)
class TableInfo:
    """Information about a database table"""
    name: str
    columns: Tuple[ColumnInfo, ...] = ()
    primary_keys: Tuple[str, ...] = ()
    unique_keys: Tuple[Tuple[str, ...], ...] = ()
    foreign_keys: Tuple[ForeignKeyInfo, ...] = ()
    schema: Optional[str] = field(default=None, compare=False)

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    def get_column(self, name: str) -> Optional[ColumnInfo]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def column_index(self, name: str) -> int:
        for idx, col in enumerate(self.columns):
            if col.name == name:
                return idx
        return -1

    def single_unique_columns(self) -> List[str]:
        """Columns that are unique on their own (single-column primary or unique keys)"""
        columns = list(self.primary_keys) if len(self.primary_keys) == 1 else []
        for group in self.unique_keys:
            if len(group) == 1 and group[0] not in columns:
                columns.append(group[0])
        return columns

    def foreign_keys_for(self, column_name: str) -> List[ForeignKeyInfo]:
        return [fk for fk in self.foreign_keys if fk.column_name == column_name]


# table name -> TableInfo; built once per run and never mutated afterwards
SchemaModel = Dict[str, TableInfo]
