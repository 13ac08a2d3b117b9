"""
Database adapters and schema management
"""

from .models import ColumnDataType, ColumnInfo, ForeignKeyInfo, TableInfo, SchemaModel
from .adapters import (
    DatabaseAdapter,
    InsertStatement,
    PostgreSQLAdapter,
    MySQLAdapter,
    DB2Adapter,
    SQLiteAdapter,
)
from .factory import DatabaseFactory
from .type_mapping import normalize_type
from .values import convert_to_db_type, generate_random_value, format_value

__all__ = [
    'ColumnDataType',
    'ColumnInfo',
    'ForeignKeyInfo',
    'TableInfo',
    'SchemaModel',
    'DatabaseAdapter',
    'InsertStatement',
    'PostgreSQLAdapter',
    'MySQLAdapter',
    'DB2Adapter',
    'SQLiteAdapter',
    'DatabaseFactory',
    'normalize_type',
    'convert_to_db_type',
    'generate_random_value',
    'format_value'
]
