"""Tests for the adapter registry."""

import pytest

from db_auto_importer.database.adapters import (
    DB2Adapter,
    MySQLAdapter,
    PostgreSQLAdapter,
    SQLiteAdapter,
)
from db_auto_importer.database.factory import DatabaseFactory
from db_auto_importer.errors import UnsupportedDatabaseError


class TestDatabaseFactory:

    @pytest.fixture
    def factory(self):
        return DatabaseFactory.default()

    def test_supported_types(self, factory):
        assert factory.get_supported_types() == ["db2", "mysql", "postgres", "postgresql", "sqlite"]

    @pytest.mark.parametrize("db_type, adapter_cls", [
        ("postgres", PostgreSQLAdapter),
        ("postgresql", PostgreSQLAdapter),
        ("MySQL", MySQLAdapter),
        ("db2", DB2Adapter),
        ("sqlite", SQLiteAdapter),
    ])
    def test_adapter_class(self, factory, db_type, adapter_cls):
        assert factory.get_adapter_class(db_type) is adapter_cls

    def test_unsupported_type(self, factory):
        assert not factory.is_supported("oracle")
        assert not factory.is_supported("")
        with pytest.raises(UnsupportedDatabaseError, match="unsupported database type: oracle"):
            factory.create_connector("oracle", "oracle://localhost")

    def test_create_without_connecting(self, factory):
        adapter = factory.create_connector("postgres", "postgresql://u:p@localhost/db", connect=False)
        assert isinstance(adapter, PostgreSQLAdapter)
        assert adapter.engine is None

    def test_create_and_connect(self, factory, db_url):
        adapter = factory.create_connector("sqlite", db_url)
        try:
            assert adapter.engine is not None
        finally:
            adapter.close()

    def test_register(self):
        factory = DatabaseFactory()
        assert factory.get_supported_types() == []
        factory.register("Lite", SQLiteAdapter)
        assert factory.get_adapter_class("lite") is SQLiteAdapter
