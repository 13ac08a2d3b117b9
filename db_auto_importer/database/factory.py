"""
Database factory for creating appropriate database adapters
"""

from typing import Any, Dict, List, Optional, Type

from .adapters import (
    DatabaseAdapter,
    DB2Adapter,
    MySQLAdapter,
    PostgreSQLAdapter,
    SQLiteAdapter,
)
from ..errors import UnsupportedDatabaseError


class DatabaseFactory:
    """Registry of database types and the adapter class serving each.

    A factory is built once at startup (see DatabaseFactory.default) and
    handed to whoever needs to open a connection.
    """

    def __init__(self, adapters: Optional[Dict[str, Type[DatabaseAdapter]]] = None):
        self._adapters: Dict[str, Type[DatabaseAdapter]] = {}
        for db_type, adapter_cls in (adapters or {}).items():
            self.register(db_type, adapter_cls)

    @classmethod
    def default(cls) -> 'DatabaseFactory':
        return cls({
            'postgres': PostgreSQLAdapter,
            'postgresql': PostgreSQLAdapter,
            'mysql': MySQLAdapter,
            'db2': DB2Adapter,
            'sqlite': SQLiteAdapter,
        })

    def register(self, db_type: str, adapter_cls: Type[DatabaseAdapter]):
        self._adapters[db_type.lower()] = adapter_cls

    def is_supported(self, db_type: str) -> bool:
        return bool(db_type) and db_type.lower() in self._adapters

    def get_supported_types(self) -> List[str]:
        return sorted(self._adapters)

    def get_adapter_class(self, db_type: str) -> Type[DatabaseAdapter]:
        if not self.is_supported(db_type):
            raise UnsupportedDatabaseError(f"unsupported database type: {db_type}")
        return self._adapters[db_type.lower()]

    def create_connector(self, db_type: str, connection_string: str,
                         connect: bool = True, **engine_options: Any) -> DatabaseAdapter:
        """Create the adapter for db_type and, by default, open its connection"""
        adapter = self.get_adapter_class(db_type)(connection_string, **engine_options)
        if connect:
            adapter.connect()
        return adapter
