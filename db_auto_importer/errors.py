"""
Exception hierarchy for the importer
"""

from typing import Any, Optional


class ImporterError(Exception):
    """Base class for every error raised by db_auto_importer"""


class ConfigurationError(ImporterError):
    """Invalid or missing configuration value"""


class UnsupportedDatabaseError(ImporterError):
    """Database type is not registered with the factory"""


class DatabaseConnectionError(ImporterError):
    """Opening or pinging the database failed"""


class SchemaIntrospectionError(ImporterError):
    """Catalog metadata could not be retrieved"""


class CycleError(ImporterError):
    """Foreign key graph contains a cycle"""


class MissingTableError(ImporterError):
    """A foreign key references a table that is not part of the schema model"""

    def __init__(self, table_name: str, constraint_name: str):
        self.table_name = table_name
        self.constraint_name = constraint_name
        super().__init__(
            f"foreign table {table_name} not found in schema info "
            f"for foreign key {constraint_name}"
        )


class CSVReadError(ImporterError):
    """A CSV file or its header could not be read"""


class StatementPreparationError(ImporterError):
    """An insert statement could not be built for a table"""


class ParentRecordError(ImporterError):
    """Checking for or creating a parent record failed"""


class ConversionError(ImporterError):
    """Raw CSV text could not be converted to the column's type"""

    def __init__(self, value: str, data_type: Any, reason: str,
                 column: Optional[str] = None):
        self.value = value
        self.data_type = data_type
        self.column = column
        self.reason = reason
        target = f" for column {column}" if column else ""
        super().__init__(
            f"failed to convert '{value}' to {data_type}{target}: {reason}"
        )
