"""
Pytest configuration and fixtures for the registration service tests.
"""
import os
import sys
import pytest
from sqlalchemy import create_engine, text

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from registrations.app import create_app
from registrations.backends import SQLiteBackend
from registrations.file_store import LocalFileStore
from registrations.lifecycle import RegistrationManager
from registrations.models import Registration


@pytest.fixture
def db_path(tmp_path):
    """Path of a fresh SQLite store file."""
    return str(tmp_path / 'rpl.db')


@pytest.fixture
def uploads_dir(tmp_path):
    path = tmp_path / 'uploads'
    path.mkdir()
    return str(path)


@pytest.fixture
def sqlite_store(db_path):
    store = SQLiteBackend(db_path)
    yield store
    store.close()


@pytest.fixture
def file_store(uploads_dir):
    return LocalFileStore(uploads_dir)


@pytest.fixture
def notifier(mocker):
    """Mock notification channel."""
    mock = mocker.MagicMock()
    mock.send = mocker.MagicMock()
    return mock


@pytest.fixture
def manager(sqlite_store, file_store, notifier):
    return RegistrationManager(sqlite_store, file_store, notifier=notifier, event_name='RPL')


@pytest.fixture
def app(db_path, uploads_dir):
    """Create application for testing."""
    app = create_app('testing', overrides={
        'DATABASE_PATH': db_path,
        'UPLOADS_DIR': uploads_dir,
    })
    yield app
    app.store.close()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def sample_record():
    """Registration as handed over by the submission flow."""
    return Registration(
        player_name='A',
        player_mobile='999',
        player_email='a@x.com',
        player_role='batter',
        passport_photo='/u/p1.jpg',
        payment_screenshot='/u/s1.jpg'
    )


@pytest.fixture
def make_evidence(uploads_dir):
    """Create evidence files in the uploads directory; returns their paths."""
    def _make(*references):
        paths = []
        for reference in references:
            path = os.path.join(uploads_dir, os.path.basename(reference))
            with open(path, 'wb') as f:
                f.write(b'evidence')
            paths.append(path)
        return paths
    return _make


@pytest.fixture
def legacy_store(tmp_path):
    """
    SQLite store in the oldest supported layout: jersey/category columns,
    no email, no evidence photos, no aadhaar.
    """
    path = str(tmp_path / 'legacy.db')
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        conn.execute(text("""
            CREATE TABLE registrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                teamName TEXT,
                playerName TEXT,
                playerMobile TEXT,
                playerRole TEXT,
                jerseyNumber TEXT,
                jerseySize TEXT,
                category TEXT,
                screenshot TEXT,
                payment_status TEXT DEFAULT 'pending',
                created_at INTEGER
            )
        """))
        conn.execute(text("""
            INSERT INTO registrations
                (teamName, playerName, playerMobile, playerRole, jerseyNumber, jerseySize,
                 category, screenshot, payment_status, created_at)
            VALUES
                ('Kings', 'Old One', '111', 'bowler', '7', 'L', 'senior', '/uploads/old1.jpg', 'verified', 1700000000000),
                (NULL, 'Old Two', '222', 'batter', '10', 'M', 'junior', NULL, NULL, NULL)
        """))
    engine.dispose()
    return path
