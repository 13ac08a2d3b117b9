"""
Recursive creation of missing parent records.

When a child row references a key value that does not exist yet, a minimal
parent row is synthesized so the child insert cannot violate referential
integrity. The parent's own foreign keys are resolved first (depth first),
so a chain such as posts -> users -> organizations is created bottom up.
Recursion terminates because the foreign key graph has already been proven
acyclic by the topological sort.
"""

from typing import TYPE_CHECKING, Any, List

from .models import SchemaModel, TableInfo
from .values import convert_to_db_type, format_value, generate_random_value
from ..errors import ConversionError, MissingTableError, ParentRecordError
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .adapters import DatabaseAdapter

logger = get_logger(__name__)


def build_parent_row(parent: TableInfo, foreign_column: str, foreign_key_value: str) -> List[Any]:
    """Synthesize a value for every column of a parent row, in column order"""
    unique_columns = set(parent.single_unique_columns())
    values: List[Any] = []

    for col in parent.columns:
        if col.name == foreign_column:
            try:
                value = convert_to_db_type(foreign_key_value, col.data_type, col.is_nullable,
                                           col.default, column_name=col.name)
            except ConversionError as e:
                logger.warning(
                    f"Failed to convert foreign key value '{foreign_key_value}' for column "
                    f"{col.name} ({col.data_type}) in parent table {parent.name}: {e}. Using NULL."
                )
                value = None
        elif col.has_default:
            try:
                value = convert_to_db_type(col.default, col.data_type, col.is_nullable,
                                           col.default, column_name=col.name)
            except ConversionError as e:
                logger.warning(
                    f"Failed to convert default value '{col.default}' for column "
                    f"{col.name} ({col.data_type}) in parent table {parent.name}: {e}. Using NULL."
                )
                value = None
        elif col.name in unique_columns and not col.is_nullable:
            try:
                value = generate_random_value(col.data_type)
            except ValueError as e:
                logger.warning(
                    f"Failed to generate random value for unique column {col.name} "
                    f"({col.data_type}) in parent table {parent.name}: {e}. Using NULL."
                )
                value = None
        else:
            try:
                value = convert_to_db_type('', col.data_type, col.is_nullable,
                                           col.default, column_name=col.name)
            except ConversionError as e:
                logger.warning(
                    f"Failed to get default value for column {col.name} "
                    f"({col.data_type}) in parent table {parent.name}: {e}. Using NULL."
                )
                value = None
        values.append(value)

    return values


def ensure_parent_record_exists(adapter: 'DatabaseAdapter', parent: TableInfo,
                                foreign_column: str, foreign_key_value: str,
                                schema: SchemaModel) -> bool:
    """Make sure parent has a row where foreign_column equals foreign_key_value.

    Returns True when a row was synthesized, False when one already existed.
    The existence probe and the insert are separate statements; a concurrent
    writer creating the same row in between is tolerated by the adapter's
    insert-ignoring-conflicts statement.
    """
    if adapter.parent_record_exists(parent, foreign_column, foreign_key_value):
        return False

    logger.info(
        f"Creating missing parent record in table '{parent.name}' "
        f"for column '{foreign_column}' with value '{foreign_key_value}'"
    )
    values = build_parent_row(parent, foreign_column, foreign_key_value)

    for fk in parent.foreign_keys:
        idx = parent.column_index(fk.column_name)
        if idx == -1:
            logger.warning(
                f"Foreign key column '{fk.column_name}' not found in table "
                f"'{parent.name}'. Cannot ensure its parent record."
            )
            continue
        value = values[idx]
        if value is None:
            continue

        grandparent = schema.get(fk.foreign_table_name)
        if grandparent is None:
            raise MissingTableError(fk.foreign_table_name, fk.constraint_name)

        value_text = format_value(value)
        try:
            adapter.ensure_parent_record_exists(grandparent, fk.foreign_column_name,
                                                value_text, schema)
        except ParentRecordError as e:
            raise ParentRecordError(
                f"failed to recursively ensure parent record for "
                f"{fk.foreign_table_name}.{fk.foreign_column_name} (value: {value_text}): {e}"
            ) from e

    return adapter.insert_parent_record(parent, values)
