"""
Mapping of engine-native column type names to canonical types
"""

import re
from typing import Dict

from .models import ColumnDataType
from ..utils.logger import get_logger

logger = get_logger(__name__)

_TYPE_SYNONYMS: Dict[str, ColumnDataType] = {
    # strings
    'text': ColumnDataType.STRING,
    'character varying': ColumnDataType.STRING,
    'varchar': ColumnDataType.STRING,
    'nvarchar': ColumnDataType.STRING,
    'char': ColumnDataType.STRING,
    'character': ColumnDataType.STRING,
    'nchar': ColumnDataType.STRING,
    'bpchar': ColumnDataType.STRING,
    'clob': ColumnDataType.STRING,
    'tinytext': ColumnDataType.STRING,
    'mediumtext': ColumnDataType.STRING,
    'longtext': ColumnDataType.STRING,
    'graphic': ColumnDataType.STRING,
    'vargraphic': ColumnDataType.STRING,
    'long vargraphic': ColumnDataType.STRING,
    'uuid': ColumnDataType.STRING,
    # integers
    'integer': ColumnDataType.INTEGER,
    'int': ColumnDataType.INTEGER,
    'smallint': ColumnDataType.INTEGER,
    'bigint': ColumnDataType.INTEGER,
    'mediumint': ColumnDataType.INTEGER,
    'tinyint': ColumnDataType.INTEGER,
    # floats
    'numeric': ColumnDataType.FLOAT,
    'decimal': ColumnDataType.FLOAT,
    'real': ColumnDataType.FLOAT,
    'double precision': ColumnDataType.FLOAT,
    'double': ColumnDataType.FLOAT,
    'decfloat': ColumnDataType.FLOAT,
    'float': ColumnDataType.FLOAT,
    # booleans (MySQL reports BOOLEAN as TINYINT(1))
    'boolean': ColumnDataType.BOOLEAN,
    'bool': ColumnDataType.BOOLEAN,
    'tinyint(1)': ColumnDataType.BOOLEAN,
    # dates
    'date': ColumnDataType.DATE,
    # timestamps
    'timestamp': ColumnDataType.TIMESTAMP,
    'timestamp without time zone': ColumnDataType.TIMESTAMP,
    'timestamp with time zone': ColumnDataType.TIMESTAMP,
    'timestamptz': ColumnDataType.TIMESTAMP,
    'datetime': ColumnDataType.TIMESTAMP,
    'time': ColumnDataType.TIMESTAMP,
    'time without time zone': ColumnDataType.TIMESTAMP,
    'time with time zone': ColumnDataType.TIMESTAMP,
    'timetz': ColumnDataType.TIMESTAMP,
}

# "VARCHAR(255)" -> "varchar", "NUMERIC(10, 2)" -> "numeric"
_PARAMS_PATTERN = re.compile(r'\s*\([^)]*\)')


def normalize_type(native_type: str) -> ColumnDataType:
    """Map an engine type name onto ColumnDataType.

    Matching is case-insensitive. Length and precision parameters are ignored
    unless the parameterized spelling itself is a known synonym. Unknown names
    map to ColumnDataType.UNKNOWN and are logged, never raised.
    """
    lowered = ' '.join((native_type or '').lower().split())
    if lowered in _TYPE_SYNONYMS:
        return _TYPE_SYNONYMS[lowered]

    base = _PARAMS_PATTERN.sub('', lowered).strip()
    for suffix in (' unsigned', ' signed', ' zerofill'):
        if base.endswith(suffix):
            base = base[:-len(suffix)].strip()
    if base in _TYPE_SYNONYMS:
        return _TYPE_SYNONYMS[base]
    if base.startswith('timestamp'):
        return ColumnDataType.TIMESTAMP

    logger.warning(f"Unknown database data type '{native_type}'. Mapping to UNKNOWN.")
    return ColumnDataType.UNKNOWN
