#!/usr/bin/env python3
"""
Schema migration script for the SQLite registration store.
Stop the service before running it, and restart it afterwards.

Usage:
    python manage_db.py [add-columns|remove-columns|all] [DB_PATH]

DB_PATH defaults to $DATABASE_PATH, then ./rpl.db.
"""
import logging
import os
import sys

from registrations.migrator import MODES, SchemaMigrator
from shared.errors import MigrationError


def migrate(mode: str, db_path: str) -> int:
    """Run one migration and return the process exit code."""
    print(f"Starting {mode} migration of {db_path}...")
    migrator = SchemaMigrator(db_path)
    try:
        report = migrator.run(mode)
    except MigrationError as e:
        print(f"Migration failed: {e}")
        return 1
    finally:
        migrator.close()

    print(f"Backup created: {report.backup_path}")
    print(f"Existing columns: {', '.join(report.columns_before)}")

    if report.rebuild is not None:
        if report.rebuild.changed:
            print(f"✓ Removed columns: {', '.join(report.rebuild.removed)} "
                  f"({report.rebuild.rows_copied} rows copied)")
        else:
            print("No deprecated columns found - rebuild not needed.")

    if report.columns is not None:
        for column in report.columns.added:
            print(f"✓ Added: {column}")
        for column, error in report.columns.failed.items():
            print(f"Failed to add {column}: {error}")
        if not report.columns.changed and report.columns.ok:
            print("All expected columns already present.")

    print(f"Final columns: {', '.join(report.columns_after)}")
    if not report.ok:
        return 1

    print("Migration finished. If the service is running, restart it now.")
    return 0


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    mode = argv[0] if argv else 'all'
    db_path = argv[1] if len(argv) > 1 else os.getenv('DATABASE_PATH', os.path.join(os.getcwd(), 'rpl.db'))

    if mode not in MODES:
        print(f"Unknown mode: {mode}")
        print("Usage: python manage_db.py [add-columns|remove-columns|all] [DB_PATH]")
        return 1

    logging.basicConfig(level=os.getenv('LOG_LEVEL', 'WARNING'))
    return migrate(mode, db_path)


if __name__ == '__main__':
    sys.exit(main())
