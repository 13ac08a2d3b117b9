"""
Database adapters for different database types
"""

import re
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from psycopg2 import errorcodes as pg_errorcodes
from pymysql.constants import ER as MYSQL_ER
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Connection, Dialect, Engine, make_url
from sqlalchemy.engine.default import DefaultDialect
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from .models import ColumnInfo, ForeignKeyInfo, SchemaModel, TableInfo
from .resolver import ensure_parent_record_exists
from .type_mapping import normalize_type
from .values import parse_bool
from ..errors import (
    DatabaseConnectionError,
    ParentRecordError,
    SchemaIntrospectionError,
    StatementPreparationError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

_CAST_SUFFIX = re.compile(r'::[A-Za-z_][\w\s"\[\]]*(\([^)]*\))?\s*$')
_NUMERIC_LITERAL = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')


def literal_default(raw: Optional[str]) -> Optional[str]:
    """Reduce a reflected column default to the literal text it stands for.

    Casts and wrapping parentheses are removed and quoted strings unquoted.
    Expression defaults (sequences, CURRENT_TIMESTAMP, function calls) have no
    literal form and yield None, as does an explicit NULL.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    while True:
        stripped = _CAST_SUFFIX.sub('', text).strip()
        if len(stripped) >= 2 and stripped[0] == '(' and stripped[-1] == ')':
            stripped = stripped[1:-1].strip()
        if stripped == text:
            break
        text = stripped

    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        return text[1:-1].replace("''", "'")
    if text.upper() == 'NULL':
        return None
    if _NUMERIC_LITERAL.match(text):
        return text
    if text.lower() in ('true', 'false') and parse_bool(text) is not None:
        return text.lower()
    return None


class InsertStatement:
    """An INSERT (or upsert) bound to one table and one adapter"""

    def __init__(self, adapter: 'DatabaseAdapter', table: TableInfo, sql: str):
        self.adapter = adapter
        self.table = table
        self.sql = sql

    def execute(self, values: Sequence[Any]) -> int:
        if len(values) != len(self.table.columns):
            raise ValueError(
                f"expected {len(self.table.columns)} values for table "
                f"{self.table.name}, got {len(values)}"
            )
        return self.adapter.execute(self.sql, values)

    def __repr__(self) -> str:
        return f"InsertStatement(table={self.table.name!r}, sql={self.sql!r})"


class DatabaseAdapter(ABC):
    """Abstract base class for database adapters.

    Every adapter exposes the same capability set: schema introspection,
    insert statement preparation, the parent existence probe, recursive
    parent creation, access to the live connection and close. One
    SQLAlchemy connection is opened by connect() and reused by every
    statement until close().
    """

    db_type = ''
    display_name = ''
    url_schemes: Tuple[str, ...] = ()
    default_driver = ''
    placeholder = '?'
    ping_query = 'SELECT 1'

    def __init__(self, connection_string: str, **engine_options: Any):
        self.connection_string = connection_string
        self.engine_options = engine_options
        self.engine: Optional[Engine] = None
        self._connection: Optional[Connection] = None

    # ------------------------------------------------------------------
    # connection handling
    # ------------------------------------------------------------------

    def build_url(self, connection_string: Optional[str] = None):
        """Parse the connection string, filling in the adapter's default driver"""
        url = make_url(connection_string or self.connection_string)
        if url.drivername in self.url_schemes:
            url = url.set(drivername=self.default_driver)
        return url

    def _create_engine(self, url) -> Engine:
        return create_engine(url, **self.engine_options)

    def connect(self) -> Connection:
        """Open and validate the live connection"""
        if self._connection is not None:
            return self._connection

        try:
            self.engine = self._create_engine(self.build_url())
            self._connection = self.engine.connect()
            self._connection.exec_driver_sql(self.ping_query)
            self._connection.commit()
        except (SQLAlchemyError, ImportError) as e:
            self.close()
            raise DatabaseConnectionError(
                f"failed to connect to {self.display_name} database: {e}"
            ) from e

        logger.info(f"Successfully connected to {self.display_name} database.")
        return self._connection

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            return self.connect()
        return self._connection

    @property
    def dialect(self) -> Dialect:
        if self.engine is not None:
            return self.engine.dialect
        return self.offline_dialect()

    def offline_dialect(self) -> Dialect:
        """Dialect used to render SQL before a connection exists"""
        return DefaultDialect()

    def close(self):
        if self._connection is not None:
            try:
                self._connection.close()
            finally:
                self._connection = None
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    def __enter__(self) -> 'DatabaseAdapter':
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    # ------------------------------------------------------------------
    # statement execution
    # ------------------------------------------------------------------

    def adapt_value(self, value: Any) -> Any:
        """Hook for drivers that need a different Python type for a value"""
        return value

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute one statement and commit it; roll back and re-raise on failure"""
        conn = self.connection
        try:
            result = conn.exec_driver_sql(sql, tuple(self.adapt_value(v) for v in params))
            rowcount = result.rowcount
            conn.commit()
            return rowcount
        except DBAPIError:
            conn.rollback()
            raise

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Tuple[Any, ...]]:
        conn = self.connection
        try:
            row = conn.exec_driver_sql(sql, tuple(self.adapt_value(v) for v in params)).fetchone()
            conn.commit()
        except DBAPIError:
            conn.rollback()
            raise
        return tuple(row) if row is not None else None

    # ------------------------------------------------------------------
    # SQL rendering helpers
    # ------------------------------------------------------------------

    def quote(self, identifier: str) -> str:
        return self.dialect.identifier_preparer.quote(identifier)

    def qualified_name(self, table: TableInfo) -> str:
        if table.schema:
            preparer = self.dialect.identifier_preparer
            return f"{preparer.quote_schema(table.schema)}.{preparer.quote(table.name)}"
        return self.quote(table.name)

    def placeholders(self, count: int) -> str:
        return ', '.join([self.placeholder] * count)

    def column_list(self, table: TableInfo) -> str:
        return ', '.join(self.quote(col.name) for col in table.columns)

    def plain_insert_sql(self, table: TableInfo) -> str:
        return (f"INSERT INTO {self.qualified_name(table)} ({self.column_list(table)}) "
                f"VALUES ({self.placeholders(len(table.columns))})")

    def update_columns(self, table: TableInfo) -> List[str]:
        pk = set(table.primary_keys)
        return [col.name for col in table.columns if col.name not in pk]

    @abstractmethod
    def build_insert_sql(self, table: TableInfo) -> str:
        """INSERT used for CSV rows, upserting on primary key conflicts"""
        pass

    @abstractmethod
    def build_parent_insert_sql(self, table: TableInfo) -> str:
        """INSERT used for synthesized parent rows, ignoring key conflicts"""
        pass

    @abstractmethod
    def is_duplicate_key_error(self, error: DBAPIError) -> bool:
        """Whether a driver error is a unique/primary key violation"""
        pass

    def build_exists_sql(self, table: TableInfo, column_name: str) -> str:
        return (f"SELECT EXISTS(SELECT 1 FROM {self.qualified_name(table)} "
                f"WHERE {self.quote(column_name)} = {self.placeholder})")

    # ------------------------------------------------------------------
    # schema introspection
    # ------------------------------------------------------------------

    def native_type_name(self, column_type: Any) -> str:
        try:
            return column_type.compile(dialect=self.dialect)
        except SQLAlchemyError:
            return type(column_type).__name__

    def get_schema_info(self, schema: Optional[str] = None) -> SchemaModel:
        """Retrieve tables, columns, keys and foreign keys of a schema"""
        logger.info(f"Retrieving schema for '{schema or 'default'}' from {self.display_name}.")
        inspector = inspect(self.connection)

        try:
            table_names = inspector.get_table_names(schema=schema)
        except (SQLAlchemyError, NotImplementedError) as e:
            raise SchemaIntrospectionError(
                f"failed to get table names from schema '{schema}': {e}"
            ) from e

        schema_info: SchemaModel = {}
        for table_name in table_names:
            try:
                columns = self._get_columns(inspector, table_name, schema)
                primary_keys = self._get_primary_keys(inspector, table_name, schema)
                unique_keys = self._get_unique_keys(inspector, table_name, schema, primary_keys)
                foreign_keys = self._get_foreign_keys(inspector, table_name, schema)
            except (SQLAlchemyError, NotImplementedError) as e:
                raise SchemaIntrospectionError(
                    f"failed to get schema info for table {table_name}: {e}"
                ) from e

            schema_info[table_name] = TableInfo(
                name=table_name,
                columns=tuple(columns),
                primary_keys=tuple(primary_keys),
                unique_keys=tuple(unique_keys),
                foreign_keys=tuple(foreign_keys),
                schema=schema,
            )

        # the inspector left a transaction open on the shared connection
        self.connection.commit()
        return schema_info

    def _get_columns(self, inspector, table_name: str, schema: Optional[str]) -> List[ColumnInfo]:
        columns = []
        for col in inspector.get_columns(table_name, schema=schema):
            native = self.native_type_name(col['type'])
            columns.append(ColumnInfo(
                name=col['name'],
                data_type=normalize_type(native),
                is_nullable=bool(col.get('nullable', True)),
                default=literal_default(col.get('default')),
                native_type=native,
            ))
        return columns

    def _get_primary_keys(self, inspector, table_name: str, schema: Optional[str]) -> List[str]:
        pk_constraint = inspector.get_pk_constraint(table_name, schema=schema)
        return list(pk_constraint.get('constrained_columns') or []) if pk_constraint else []

    def _get_unique_keys(self, inspector, table_name: str, schema: Optional[str],
                         primary_keys: List[str]) -> List[Tuple[str, ...]]:
        groups: List[Tuple[str, ...]] = []
        candidates = [uc.get('column_names') or []
                      for uc in inspector.get_unique_constraints(table_name, schema=schema)]
        candidates += [idx.get('column_names') or []
                       for idx in inspector.get_indexes(table_name, schema=schema)
                       if idx.get('unique')]

        for column_names in candidates:
            # expression indexes report None for their computed members
            if not column_names or any(name is None for name in column_names):
                continue
            group = tuple(column_names)
            if list(group) == list(primary_keys) or group in groups:
                continue
            groups.append(group)
        return groups

    def _get_foreign_keys(self, inspector, table_name: str,
                          schema: Optional[str]) -> List[ForeignKeyInfo]:
        foreign_keys = []
        for fk in inspector.get_foreign_keys(table_name, schema=schema):
            constrained = fk.get('constrained_columns') or []
            referred = fk.get('referred_columns') or []
            for column_name, foreign_column_name in zip(constrained, referred):
                info = ForeignKeyInfo(
                    constraint_name=fk.get('name') or f"fk_{table_name}_{column_name}",
                    table_name=table_name,
                    column_name=column_name,
                    foreign_table_name=fk['referred_table'],
                    foreign_column_name=foreign_column_name,
                )
                logger.debug(f"Found foreign key: {info}")
                foreign_keys.append(info)
        return foreign_keys

    # ------------------------------------------------------------------
    # import capabilities
    # ------------------------------------------------------------------

    def prepare_insert_statement(self, table: TableInfo) -> InsertStatement:
        if not table.columns:
            raise StatementPreparationError(
                f"failed to prepare statement: table {table.name} has no columns"
            )
        try:
            sql = self.build_insert_sql(table)
        except SQLAlchemyError as e:
            raise StatementPreparationError(f"failed to prepare statement: {e}") from e
        return InsertStatement(self, table, sql)

    def parent_record_exists(self, table: TableInfo, column_name: str, value: str) -> bool:
        try:
            row = self.query_one(self.build_exists_sql(table, column_name), (value,))
        except DBAPIError as e:
            raise ParentRecordError(
                f"failed to check existence of record in {table.name} "
                f"for {column_name}={value}: {e}"
            ) from e
        return bool(row and row[0])

    def ensure_parent_record_exists(self, table: TableInfo, column_name: str, value: str,
                                    schema: SchemaModel) -> bool:
        return ensure_parent_record_exists(self, table, column_name, value, schema)

    def insert_parent_record(self, table: TableInfo, values: Sequence[Any]) -> bool:
        """Insert a synthesized row; a duplicate key means another path created it first"""
        try:
            rowcount = self.execute(self.build_parent_insert_sql(table), values)
        except DBAPIError as e:
            if self.is_duplicate_key_error(e):
                logger.debug(f"Parent record in {table.name} already created elsewhere: {e.orig}")
                return False
            raise ParentRecordError(
                f"failed to insert parent record into {table.name}: {e}"
            ) from e
        # 0 rows: the conflict-ignoring insert found the row already there
        return rowcount != 0


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL database adapter"""

    db_type = 'postgres'
    display_name = 'PostgreSQL'
    url_schemes = ('postgres', 'postgresql')
    default_driver = 'postgresql+psycopg2'
    placeholder = '%s'

    def offline_dialect(self) -> Dialect:
        return postgresql.dialect()

    def build_insert_sql(self, table: TableInfo) -> str:
        query = self.plain_insert_sql(table)
        if not table.primary_keys:
            return query

        conflict = ', '.join(self.quote(name) for name in table.primary_keys)
        updates = [f"{self.quote(name)} = EXCLUDED.{self.quote(name)}"
                   for name in self.update_columns(table)]
        if updates:
            return f"{query} ON CONFLICT ({conflict}) DO UPDATE SET {', '.join(updates)}"
        return f"{query} ON CONFLICT ({conflict}) DO NOTHING"

    def build_parent_insert_sql(self, table: TableInfo) -> str:
        return f"{self.plain_insert_sql(table)} ON CONFLICT DO NOTHING"

    def is_duplicate_key_error(self, error: DBAPIError) -> bool:
        return getattr(error.orig, 'pgcode', None) == pg_errorcodes.UNIQUE_VIOLATION


class MySQLAdapter(DatabaseAdapter):
    """MySQL database adapter"""

    db_type = 'mysql'
    display_name = 'MySQL'
    url_schemes = ('mysql',)
    default_driver = 'mysql+pymysql'
    placeholder = '%s'

    def offline_dialect(self) -> Dialect:
        return mysql.dialect()

    def build_insert_sql(self, table: TableInfo) -> str:
        if not table.primary_keys:
            return self.plain_insert_sql(table)

        updates = [f"{self.quote(name)} = VALUES({self.quote(name)})"
                   for name in self.update_columns(table)]
        if updates:
            return f"{self.plain_insert_sql(table)} ON DUPLICATE KEY UPDATE {', '.join(updates)}"
        # nothing besides the key to update
        return self.plain_insert_sql(table).replace('INSERT INTO', 'INSERT IGNORE INTO', 1)

    def build_parent_insert_sql(self, table: TableInfo) -> str:
        return self.plain_insert_sql(table).replace('INSERT INTO', 'INSERT IGNORE INTO', 1)

    def is_duplicate_key_error(self, error: DBAPIError) -> bool:
        args = getattr(error.orig, 'args', ())
        return bool(args) and args[0] == MYSQL_ER.DUP_ENTRY


class DB2Adapter(DatabaseAdapter):
    """DB2 database adapter (requires the ibm_db and ibm_db_sa packages)"""

    db_type = 'db2'
    display_name = 'DB2'
    url_schemes = ('db2', 'ibm_db_sa')
    default_driver = 'ibm_db_sa'
    placeholder = '?'
    ping_query = 'SELECT 1 FROM SYSIBM.SYSDUMMY1'

    def _create_engine(self, url) -> Engine:
        try:
            return super()._create_engine(url)
        except (ImportError, SQLAlchemyError) as e:
            raise DatabaseConnectionError(
                "DB2 support requires the ibm_db and ibm_db_sa packages "
                f"(pip install 'db-auto-importer[db2]'): {e}"
            ) from e

    def _source_value(self, col: ColumnInfo) -> str:
        if col.native_type:
            return f"CAST({self.placeholder} AS {col.native_type})"
        return self.placeholder

    def build_insert_sql(self, table: TableInfo) -> str:
        if not table.primary_keys:
            return self.plain_insert_sql(table)

        columns = [self.quote(col.name) for col in table.columns]
        on_clause = ' AND '.join(f"T.{self.quote(name)} = S.{self.quote(name)}"
                                 for name in table.primary_keys)
        updates = [f"T.{self.quote(name)} = S.{self.quote(name)}"
                   for name in self.update_columns(table)]
        sources = ', '.join(self._source_value(col) for col in table.columns)

        query = (f"MERGE INTO {self.qualified_name(table)} AS T "
                 f"USING (VALUES ({sources})) AS S ({', '.join(columns)}) "
                 f"ON ({on_clause}) ")
        if updates:
            query += f"WHEN MATCHED THEN UPDATE SET {', '.join(updates)} "
        query += (f"WHEN NOT MATCHED THEN INSERT ({', '.join(columns)}) "
                  f"VALUES ({', '.join('S.' + name for name in columns)})")
        return query

    def build_parent_insert_sql(self, table: TableInfo) -> str:
        # no insert-ignore in DB2, duplicates are caught by is_duplicate_key_error
        return self.plain_insert_sql(table)

    def build_exists_sql(self, table: TableInfo, column_name: str) -> str:
        return (f"SELECT 1 FROM {self.qualified_name(table)} "
                f"WHERE {self.quote(column_name)} = {self.placeholder} "
                f"FETCH FIRST 1 ROWS ONLY")

    def is_duplicate_key_error(self, error: DBAPIError) -> bool:
        orig = error.orig
        sqlstate = getattr(orig, 'sqlstate', None)
        return sqlstate == '23505' or 'SQL0803N' in str(orig)


class SQLiteAdapter(DatabaseAdapter):
    """SQLite database adapter"""

    db_type = 'sqlite'
    display_name = 'SQLite'
    url_schemes = ('sqlite',)
    default_driver = 'sqlite'
    placeholder = '?'

    def offline_dialect(self) -> Dialect:
        return sqlite.dialect()

    def _create_engine(self, url) -> Engine:
        engine = super()._create_engine(url)

        @event.listens_for(engine, 'connect')
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

        return engine

    def adapt_value(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat(sep=' ')
        if isinstance(value, date):
            return value.isoformat()
        return value

    def build_insert_sql(self, table: TableInfo) -> str:
        query = self.plain_insert_sql(table)
        if not table.primary_keys:
            return query

        conflict = ', '.join(self.quote(name) for name in table.primary_keys)
        updates = [f"{self.quote(name)} = excluded.{self.quote(name)}"
                   for name in self.update_columns(table)]
        if updates:
            return f"{query} ON CONFLICT ({conflict}) DO UPDATE SET {', '.join(updates)}"
        return f"{query} ON CONFLICT ({conflict}) DO NOTHING"

    def build_parent_insert_sql(self, table: TableInfo) -> str:
        return f"{self.plain_insert_sql(table)} ON CONFLICT DO NOTHING"

    def is_duplicate_key_error(self, error: DBAPIError) -> bool:
        message = str(error.orig)
        return 'UNIQUE constraint failed' in message or 'PRIMARY KEY must be unique' in message
