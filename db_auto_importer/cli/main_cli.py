"""
Command line interface for the CSV importer
"""

import argparse
import sys
from typing import List, Optional

from ..app import run_app
from ..config import ENV_VARS, load_config
from ..database.factory import DatabaseFactory
from ..errors import ImporterError
from ..importer.csv_importer import TableImportResult
from ..utils.logger import setup_logging


def build_parser(factory: DatabaseFactory) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='db-auto-importer',
        description='Import a directory of CSV files into a relational database, '
                    'creating missing parent records for foreign keys.'
    )
    parser.add_argument('--db-type', dest='db_type', choices=factory.get_supported_types(),
                        help=f"database type (env {ENV_VARS['db_type']}, default postgres)")
    parser.add_argument('--db', dest='connection_string',
                        help=f"database connection string (env {ENV_VARS['connection_string']})")
    parser.add_argument('--csv', dest='csv_dir',
                        help=f"directory containing CSV files (env {ENV_VARS['csv_dir']}, default ./testdata)")
    header = parser.add_mutually_exclusive_group()
    header.add_argument('--header', dest='has_header', action='store_true', default=None,
                        help='CSV files have a header row (default)')
    header.add_argument('--no-header', dest='has_header', action='store_false',
                        help='CSV files have no header row; columns map by position')
    parser.add_argument('--schema', dest='schema',
                        help=f"database schema to introspect (env {ENV_VARS['schema']})")
    parser.add_argument('--log-level', dest='log_level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], type=str.upper,
                        help=f"log level (env {ENV_VARS['log_level']}, default INFO)")
    return parser


def print_summary(results: List[TableImportResult]):
    print("\n" + "=" * 60)
    print("📊 Import summary")
    print("=" * 60)
    if not results:
        print("  No CSV files matched any table.")
        return
    for result in results:
        print(f"  {result.table}: {result.rows_inserted}/{result.rows_read} rows inserted, "
              f"{result.rows_failed} failed, {result.parents_created} parent records created")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point, returns the process exit code"""
    factory = DatabaseFactory.default()
    args = build_parser(factory).parse_args(argv)

    try:
        config = load_config(vars(args))
    except ImporterError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    logger = setup_logging(config.log_level)
    logger.info("db-auto-importer started.")

    try:
        config.validate(factory)
        results = run_app(config, factory)
    except ImporterError as e:
        logger.error(f"Import failed: {e}")
        print(f"❌ {e}", file=sys.stderr)
        return 1

    print_summary(results)
    logger.info("db-auto-importer finished successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
