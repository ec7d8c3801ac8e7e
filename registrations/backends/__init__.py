import logging

from ..config import remote_store_configured
from .base import StorageBackend
from .remote_backend import RemoteBackend
from .sqlite_backend import SQLiteBackend

logger = logging.getLogger(__name__)


def create_store(settings) -> StorageBackend:
    """
    Pick the registration store once, at process start.

    The remote service wins when both its URL and key are configured;
    otherwise the local SQLite file is used.
    """
    if remote_store_configured(settings):
        logger.info(f"Using remote registration store at {settings['SUPABASE_URL']}")
        return RemoteBackend(
            url=settings['SUPABASE_URL'],
            api_key=settings['SUPABASE_KEY'],
            table=settings.get('SUPABASE_TABLE', 'registrations'),
            timeout=settings.get('SUPABASE_TIMEOUT', 10),
        )

    logger.info(f"Using SQLite registration store at {settings['DATABASE_PATH']}")
    return SQLiteBackend(settings['DATABASE_PATH'])


__all__ = ['StorageBackend', 'RemoteBackend', 'SQLiteBackend', 'create_store']
