import os
from flask import Flask, jsonify

from .config import config
from .backends import create_store
from .file_store import LocalFileStore
from .lifecycle import RegistrationManager
from .notifier import build_notifier


def create_app(config_name: str = None, overrides: dict = None) -> Flask:
    """Application factory for the registration service."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))
    if overrides:
        app.config.update(overrides)

    # The store is chosen here, once; everything below receives it by reference.
    store = create_store(app.config)
    files = LocalFileStore(app.config['UPLOADS_DIR'])
    files.ensure_directory()

    app.store = store
    app.registrations = RegistrationManager(
        store=store,
        files=files,
        notifier=build_notifier(app),
        event_name=app.config['EVENT_NAME']
    )

    register_routes(app)

    return app


def register_routes(app: Flask):
    """Service-level routes; registration endpoints are mounted by the web layer."""

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        db_ok = app.store.check_connection()
        status = 'healthy' if db_ok else 'unhealthy'
        code = 200 if db_ok else 503

        return jsonify({
            'status': status,
            'database': 'connected' if db_ok else 'disconnected',
            'backend': app.store.name
        }), code
