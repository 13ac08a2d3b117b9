"""
Import run: connect, introspect, order tables and import CSV files
"""

from typing import List, Optional

from .config import ImporterConfig
from .database.factory import DatabaseFactory
from .importer.csv_importer import CSVImporter, TableImportResult
from .utils.logger import get_logger

logger = get_logger(__name__)


def run_app(config: ImporterConfig, factory: Optional[DatabaseFactory] = None) -> List[TableImportResult]:
    """Run one import; any ImporterError raised is the run's terminal error"""
    factory = factory or DatabaseFactory.default()

    adapter = factory.create_connector(config.db_type, config.connection_string)
    try:
        schema_info = adapter.get_schema_info(config.schema)
        logger.info(f"Database schema information retrieved successfully ({len(schema_info)} tables).")

        importer = CSVImporter(schema_info, adapter)
        return importer.import_csv_files(config.csv_dir, config.has_header)
    finally:
        adapter.close()
