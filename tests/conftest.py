"""Shared fixtures: a file-backed SQLite database with the sample schema."""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

import pytest

from db_auto_importer.database.adapters import SQLiteAdapter
from db_auto_importer.utils.logger import ROOT_LOGGER_NAME

SAMPLE_SCHEMA = """
CREATE TABLE organizations (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL
);

CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    email VARCHAR(255) NOT NULL,
    organization_id INTEGER NOT NULL DEFAULT 1 REFERENCES organizations (id),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT uq_users_email UNIQUE (email)
);

CREATE TABLE posts (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    body TEXT,
    CONSTRAINT fk_posts_user FOREIGN KEY (user_id) REFERENCES users (id)
);

CREATE TABLE products (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    price DECIMAL(10, 2),
    in_stock BOOLEAN NOT NULL DEFAULT 1,
    released DATE,
    CONSTRAINT uq_products_name UNIQUE (name)
);

CREATE TABLE tags (
    id INTEGER PRIMARY KEY,
    label VARCHAR(50) NOT NULL
);

CREATE TABLE product_tags (
    product_id INTEGER NOT NULL REFERENCES products (id),
    tag_id INTEGER NOT NULL REFERENCES tags (id),
    PRIMARY KEY (product_id, tag_id)
);
"""


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers the CLI attaches so they never outlive a test's captured stderr."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "sample.db"
    with closing(sqlite3.connect(path)) as conn:
        conn.executescript(SAMPLE_SCHEMA)
        conn.commit()
    return path


@pytest.fixture
def db_url(db_path: Path) -> str:
    return f"sqlite:///{db_path}"


@pytest.fixture
def adapter(db_url: str):
    sqlite_adapter = SQLiteAdapter(db_url)
    with sqlite_adapter:
        yield sqlite_adapter


@pytest.fixture
def schema(adapter):
    return adapter.get_schema_info()


@pytest.fixture
def csv_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "csv"
    directory.mkdir()
    return directory


@pytest.fixture
def write_csv(csv_dir: Path):
    """Write a CSV file named after a table into csv_dir."""
    def _write(table_name: str, text: str) -> Path:
        path = csv_dir / f"{table_name}.csv"
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def query(db_path: Path):
    """Run a query on a separate connection to check what was committed."""
    def _query(sql: str, params=()):
        with closing(sqlite3.connect(db_path)) as conn:
            return conn.execute(sql, params).fetchall()
    return _query
