"""
db_auto_importer - import CSV files into a relational database in foreign key order
"""

__version__ = "0.1.0"

from .app import run_app
from .config import ImporterConfig, load_config
from .database import DatabaseFactory
from .errors import ImporterError
from .importer import CSVImporter, TableImportResult

__all__ = [
    'run_app',
    'ImporterConfig',
    'load_config',
    'DatabaseFactory',
    'ImporterError',
    'CSVImporter',
    'TableImportResult'
]
