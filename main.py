#!/usr/bin/env python3
"""
Main entry point for db-auto-importer
"""

import sys

from db_auto_importer.cli.main_cli import main

if __name__ == "__main__":
    sys.exit(main())
