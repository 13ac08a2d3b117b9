"""
CSV parsing and data import
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy.exc import DBAPIError

from ..database.adapters import DatabaseAdapter
from ..database.models import SchemaModel, TableInfo
from ..database.values import convert_to_db_type
from ..errors import ConversionError, CSVReadError, MissingTableError
from ..graph.dependency_graph import import_order
from ..utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


@dataclass
class TableImportResult:
    """Outcome of importing one CSV file into one table.

    parents_created counts rows synthesized directly in referenced tables;
    grandparents created while resolving those rows are not included.
    """
    table: str
    file_path: str
    rows_read: int = 0
    rows_inserted: int = 0
    rows_failed: int = 0
    conversion_warnings: int = 0
    parents_created: int = 0


def discover_csv_files(directory: PathLike) -> Dict[str, Path]:
    """Map table name (file stem) to path for every *.csv directly inside directory"""
    try:
        entries = sorted(Path(directory).iterdir())
    except OSError as e:
        raise CSVReadError(f"failed to read directory {directory}: {e}") from e

    return {entry.stem: entry for entry in entries
            if entry.is_file() and entry.name.endswith('.csv')}


class CSVImporter:
    """Import CSV files into the tables of a schema in dependency order"""

    def __init__(self, schema: SchemaModel, adapter: DatabaseAdapter):
        self.schema = schema
        self.adapter = adapter

    def import_order(self) -> List[str]:
        return import_order(self.schema)

    def import_csv_files(self, directory: PathLike, has_header: bool = True) -> List[TableImportResult]:
        """Import every CSV in directory whose name matches a table"""
        csv_files = discover_csv_files(directory)
        order = self.import_order()
        logger.info(f"Determined import order: {order}")

        results = []
        for table_name in order:
            file_path = csv_files.get(table_name)
            if file_path is None:
                logger.warning(f"Skipping table {table_name}: no corresponding CSV file found.")
                continue

            logger.info(f"Importing data from {file_path} into table {table_name}...")
            results.append(self.import_single_csv(file_path, self.schema[table_name], has_header))
            logger.info(f"Finished importing {file_path}.")

        return results

    def map_columns(self, table: TableInfo, header: Optional[Sequence[str]]) -> Dict[str, int]:
        """Map DB column name to CSV field index.

        With a header, columns are matched case-insensitively by name; without
        one, DB columns map positionally in their ordinal order.
        """
        if header is None:
            return {col.name: idx for idx, col in enumerate(table.columns)}

        normalized = [name.strip().lower() for name in header]
        column_map = {}
        for col in table.columns:
            try:
                column_map[col.name] = normalized.index(col.name.lower())
            except ValueError:
                logger.warning(
                    f"Column '{col.name}' in table '{table.name}' not found in CSV header. "
                    f"Will use default/null."
                )
        return column_map

    def build_row(self, table: TableInfo, column_map: Dict[str, int], record: Sequence[str],
                  result: Optional[TableImportResult] = None) -> List[Any]:
        """Turn one CSV record into the positional values of the table's insert"""
        values = []
        for col in table.columns:
            csv_idx = column_map.get(col.name)
            raw = record[csv_idx] if csv_idx is not None and csv_idx < len(record) else ''

            # empty foreign key values are intentional NULLs
            if raw != '':
                for fk in table.foreign_keys_for(col.name):
                    parent = self.schema.get(fk.foreign_table_name)
                    if parent is None:
                        raise MissingTableError(fk.foreign_table_name, fk.constraint_name)
                    created = self.adapter.ensure_parent_record_exists(
                        parent, fk.foreign_column_name, raw, self.schema
                    )
                    if created and result is not None:
                        result.parents_created += 1

            try:
                value = convert_to_db_type(raw, col.data_type, col.is_nullable, col.default,
                                           column_name=col.name)
            except ConversionError as e:
                logger.warning(f"Table {table.name}: {e}. Using NULL.")
                if result is not None:
                    result.conversion_warnings += 1
                value = None
            values.append(value)
        return values

    def import_single_csv(self, file_path: PathLike, table: TableInfo,
                          has_header: bool = True) -> TableImportResult:
        """Import one CSV file into table, row by row.

        A row whose insert fails is logged and skipped; the remaining rows are
        still imported.
        """
        result = TableImportResult(table=table.name, file_path=str(file_path))
        try:
            csv_file = open(file_path, newline='', encoding='utf-8-sig')
        except OSError as e:
            raise CSVReadError(f"failed to open CSV file {file_path}: {e}") from e

        with csv_file:
            reader = csv.reader(csv_file)
            header = None
            if has_header:
                try:
                    header = next(reader)
                except StopIteration:
                    raise CSVReadError(f"failed to read CSV header from {file_path}: file is empty")
                except (csv.Error, UnicodeDecodeError) as e:
                    raise CSVReadError(f"failed to read CSV header from {file_path}: {e}") from e

            column_map = self.map_columns(table, header)
            statement = self.adapter.prepare_insert_statement(table)

            while True:
                try:
                    record = next(reader)
                except StopIteration:
                    break
                except (csv.Error, UnicodeDecodeError) as e:
                    raise CSVReadError(f"failed to read CSV record from {file_path}: {e}") from e

                if not record:
                    continue
                result.rows_read += 1

                values = self.build_row(table, column_map, record, result)
                try:
                    statement.execute(values)
                except DBAPIError as e:
                    result.rows_failed += 1
                    logger.warning(f"Failed to insert record {record} into {table.name}: {e.orig}")
                    continue
                result.rows_inserted += 1

        logger.info(
            f"Table {table.name}: {result.rows_inserted}/{result.rows_read} rows inserted, "
            f"{result.rows_failed} failed, {result.parents_created} parent records created"
        )
        return result
