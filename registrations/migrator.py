"""
Forward-only schema migrations for the SQLite registration store.

Two modes, both preceded by a backup copy of the store file:

- add-columns: add every expected column that is missing, one ALTER TABLE
  per column. A failing column is reported and the rest are still tried.
- remove-columns: rebuild the table without the deprecated columns inside
  a single transaction. Any failure rolls the whole rebuild back.

Never run this against a store a live service has open.
"""
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from shared.errors import BackupFailed, MigrationError, StoreNotFound
from .backends.sqlite_backend import create_sqlite_engine
from .models import DEPRECATED_COLUMNS, TABLE_NAME, now_millis

logger = logging.getLogger(__name__)

# column -> DDL type/default, in the order columns are added
EXPECTED_COLUMNS: Dict[str, str] = {
    'teamName': 'TEXT',
    'playerName': 'TEXT',
    'playerMobile': 'TEXT',
    'playerEmail': 'TEXT',
    'playerRole': 'TEXT',
    'screenshot': 'TEXT',
    'aadhaar': 'TEXT',
    'passport_photo': 'TEXT',
    'payment_screenshot': 'TEXT',
    'payment_status': "TEXT DEFAULT 'pending'",
    'created_at': 'INTEGER',
}

# Fallbacks used while copying rows into the rebuilt table.
COALESCE_DEFAULTS: Dict[str, str] = {
    'payment_status': "'pending'",
    'created_at': "CAST(strftime('%s', 'now') AS INTEGER) * 1000",
}

MODES = ('add-columns', 'remove-columns', 'all')


@dataclass
class ColumnReport:
    added: List[str] = field(default_factory=list)
    present: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def changed(self) -> bool:
        return bool(self.added)


@dataclass
class RebuildReport:
    removed: List[str] = field(default_factory=list)
    rows_copied: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.removed)


@dataclass
class MigrationReport:
    backup_path: str
    columns_before: List[str] = field(default_factory=list)
    columns_after: List[str] = field(default_factory=list)
    rebuild: Optional[RebuildReport] = None
    columns: Optional[ColumnReport] = None

    @property
    def ok(self) -> bool:
        return self.columns is None or self.columns.ok


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _enable_transactional_ddl(engine: Engine):
    """
    Let SQLAlchemy own BEGIN on pysqlite so CREATE/DROP/ALTER run inside the
    same transaction as the row copy.
    """
    @event.listens_for(engine, 'connect')
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _emit_begin(conn):
        conn.exec_driver_sql('BEGIN')


class SchemaMigrator:
    """Migrates an existing SQLite store file in place."""

    def __init__(self, db_path: str, table: str = TABLE_NAME):
        self.db_path = db_path
        self.table = table
        self._engine = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self.require_store()
            self._engine = create_sqlite_engine(self.db_path)
            _enable_transactional_ddl(self._engine)
        return self._engine

    def require_store(self):
        # create_engine would happily create an empty file; this tool never does.
        if not os.path.isfile(self.db_path):
            raise StoreNotFound(self.db_path)

    def backup(self) -> str:
        """Copy the store file to ``<db_path>.bak.<epoch-ms>`` and return the copy's path."""
        self.require_store()
        base = f"{self.db_path}.bak.{now_millis()}"
        backup_path = base
        suffix = 1
        while os.path.exists(backup_path):
            backup_path = f"{base}-{suffix}"
            suffix += 1

        try:
            shutil.copy2(self.db_path, backup_path)
        except OSError as e:
            logger.error(f"Failed to create backup of {self.db_path}: {e}")
            raise BackupFailed(self.db_path, str(e)) from e

        logger.info(f"Backup created: {backup_path}")
        return backup_path

    def existing_columns(self) -> List[str]:
        try:
            return [col['name'] for col in inspect(self.engine).get_columns(self.table)]
        except SQLAlchemyError as e:
            raise MigrationError(f"Failed to inspect table {self.table}: {e}") from e

    def add_missing_columns(self, expected: Dict[str, str] = None) -> ColumnReport:
        """Add each missing column independently; failures are collected, not raised."""
        expected = expected or EXPECTED_COLUMNS
        columns = set(self.existing_columns())
        if not columns:
            raise MigrationError(f"Table {self.table} does not exist in {self.db_path}")

        report = ColumnReport()
        for column, definition in expected.items():
            if column in columns:
                report.present.append(column)
                continue

            sql = f"ALTER TABLE {_quote(self.table)} ADD COLUMN {_quote(column)} {definition}"
            logger.info(f"Adding column: {column}")
            try:
                with self.engine.begin() as conn:
                    conn.execute(text(sql))
            except SQLAlchemyError as e:
                logger.warning(f"Failed to add {column}: {e}")
                report.failed[column] = str(e)
                continue
            report.added.append(column)

        return report

    def _restore_sequence(self, conn, last_id: int):
        updated = conn.execute(
            text("UPDATE sqlite_sequence SET seq = MAX(seq, :seq) WHERE name = :name"),
            {'seq': last_id, 'name': self.table}
        ).rowcount
        if not updated:
            conn.execute(
                text("INSERT INTO sqlite_sequence (name, seq) VALUES (:name, :seq)"),
                {'name': self.table, 'seq': last_id}
            )

    def remove_deprecated_columns(self, deprecated=DEPRECATED_COLUMNS) -> RebuildReport:
        """Rebuild the table without ``deprecated`` columns, all or nothing."""
        columns = self.existing_columns()
        to_remove = [c for c in deprecated if c in columns]
        if not to_remove:
            logger.info("No deprecated columns found - rebuild not needed")
            return RebuildReport()

        staging = f"{self.table}_new"
        targets = ['id'] + list(EXPECTED_COLUMNS)
        selects = []
        for column in targets:
            fallback = COALESCE_DEFAULTS.get(column, 'NULL')
            if column in columns:
                if column in COALESCE_DEFAULTS:
                    selects.append(f"COALESCE({_quote(column)}, {fallback})")
                else:
                    selects.append(_quote(column))
            else:
                selects.append(fallback)

        column_defs = ',\n    '.join(
            [f"{_quote('id')} INTEGER PRIMARY KEY AUTOINCREMENT"]
            + [f"{_quote(c)} {d}" for c, d in EXPECTED_COLUMNS.items()]
        )
        target_list = ', '.join(_quote(c) for c in targets)

        try:
            with self.engine.begin() as conn:
                conn.execute(text(f"DROP TABLE IF EXISTS {_quote(staging)}"))
                conn.execute(text(f"CREATE TABLE {_quote(staging)} (\n    {column_defs}\n)"))
                copied = conn.execute(text(
                    f"INSERT INTO {_quote(staging)} ({target_list}) "
                    f"SELECT {', '.join(selects)} FROM {_quote(self.table)}"
                )).rowcount
                # DROP TABLE also discards the AUTOINCREMENT counter.
                last_id = conn.execute(
                    text("SELECT seq FROM sqlite_sequence WHERE name = :name"),
                    {'name': self.table}
                ).scalar()
                conn.execute(text(f"DROP TABLE {_quote(self.table)}"))
                conn.execute(text(f"ALTER TABLE {_quote(staging)} RENAME TO {_quote(self.table)}"))
                if last_id is not None:
                    self._restore_sequence(conn, last_id)
        except SQLAlchemyError as e:
            logger.error(f"Rebuild of {self.table} failed, rolled back: {e}")
            raise MigrationError(f"Failed to remove columns {', '.join(to_remove)}: {e}") from e

        logger.info(f"Removed columns {', '.join(to_remove)} ({copied} rows copied)")
        return RebuildReport(removed=to_remove, rows_copied=copied)

    def run(self, mode: str = 'all') -> MigrationReport:
        """Back up the store, then apply ``mode``."""
        if mode not in MODES:
            raise ValueError(f"Unknown migration mode: {mode}")

        self.require_store()
        report = MigrationReport(backup_path=self.backup())
        report.columns_before = self.existing_columns()

        if mode in ('remove-columns', 'all'):
            report.rebuild = self.remove_deprecated_columns()
        if mode in ('add-columns', 'all'):
            report.columns = self.add_missing_columns()

        report.columns_after = self.existing_columns()
        return report

    def close(self):
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
