import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy import MetaData, Table, create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from shared.errors import NotFound, ReadError, WriteError
from shared.state_machine import PaymentStatus
from ..models import Base, Registration, TABLE_NAME
from .base import StorageBackend

logger = logging.getLogger(__name__)


def create_sqlite_engine(db_path: str) -> Engine:
    """Engine for a SQLite file, creating its parent directory when needed."""
    if db_path != ':memory:':
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_path}",
        pool_pre_ping=True,
        connect_args={"check_same_thread": False},
    )


class SQLiteBackend(StorageBackend):
    """
    Registration store backed by a local SQLite file.

    The canonical table is created when missing; an existing table is used
    as found, so stores that still carry deprecated columns or lack legacy
    ones keep working until the migrator has been run against them.
    """

    name = 'sqlite'

    def __init__(self, db_path: str, engine: Engine = None):
        self.db_path = db_path
        self.engine = engine or create_sqlite_engine(db_path)
        try:
            Base.metadata.create_all(self.engine, checkfirst=True)
            self.table = Table(TABLE_NAME, MetaData(), autoload_with=self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to open registration store at {db_path}: {e}")
            raise ReadError(f"Failed to open registration store: {e}") from e
        self.columns = set(self.table.c.keys())

    def _writable_row(self, record: Registration) -> dict:
        row = {}
        for column, value in record.to_row().items():
            if column in self.columns:
                row[column] = value
            elif value is not None:
                raise WriteError(
                    f"Column '{column}' is missing from {self.table.name}; "
                    f"run the schema migrator before accepting registrations"
                )
        return row

    def insert(self, record: Registration) -> int:
        row = self._writable_row(record.with_defaults())
        try:
            with self.engine.begin() as conn:
                result = conn.execute(self.table.insert().values(**row))
                new_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            logger.error(f"Insert failed: {e}")
            raise WriteError(f"Failed to save registration: {e}") from e

        logger.info(f"Saved registration id={new_id}")
        return int(new_id)

    def list_all(self) -> List[Registration]:
        query = select(self.table).order_by(self.table.c.id.desc())
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        except SQLAlchemyError as e:
            raise ReadError(f"Failed to list registrations: {e}") from e
        return [Registration.from_row(row) for row in rows]

    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        query = select(self.table).where(self.table.c.id == registration_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(query).mappings().first()
        except SQLAlchemyError as e:
            raise ReadError(f"Failed to load registration {registration_id}: {e}") from e
        if row is None:
            return None
        return Registration.from_row(row)

    def _set_status(self, registration_id: int, status: PaymentStatus):
        stmt = (
            self.table.update()
            .where(self.table.c.id == registration_id)
            .values(payment_status=status.value)
        )
        try:
            with self.engine.begin() as conn:
                affected = conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise WriteError(f"Failed to mark registration {registration_id} {status.value}: {e}") from e
        if affected == 0:
            raise NotFound(registration_id)
        logger.info(f"Registration {registration_id} marked {status.value}")

    def mark_verified(self, registration_id: int) -> None:
        self._set_status(registration_id, PaymentStatus.VERIFIED)

    def mark_rejected(self, registration_id: int) -> None:
        self._set_status(registration_id, PaymentStatus.REJECTED)

    def delete_by_id(self, registration_id: int) -> None:
        stmt = self.table.delete().where(self.table.c.id == registration_id)
        try:
            with self.engine.begin() as conn:
                affected = conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise WriteError(f"Failed to delete registration {registration_id}: {e}") from e
        if affected == 0:
            raise NotFound(registration_id)
        logger.info(f"Deleted registration id={registration_id}")

    def check_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text('SELECT 1'))
            return True
        except SQLAlchemyError:
            return False

    def close(self) -> None:
        self.engine.dispose()
