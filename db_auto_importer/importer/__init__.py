"""
CSV import
"""

from .csv_importer import CSVImporter, TableImportResult, discover_csv_files

__all__ = [
    'CSVImporter',
    'TableImportResult',
    'discover_csv_files'
]
