#!/usr/bin/env python3
"""
Entry point for the registration service.

Usage:
    python run.py

Environment Variables:
    FLASK_ENV: development, testing or production (default: development)
    PORT: Port to run on (default: 3000)
    SUPABASE_URL / SUPABASE_KEY: use the remote store instead of SQLite
    DATABASE_PATH: SQLite store file (default: ./rpl.db)
    LOG_LEVEL: logging level (default: INFO)
"""
import logging
import os


def run_service():
    """Run the registration service."""
    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    from registrations.app import create_app

    app = create_app()
    port = int(os.getenv('PORT', 3000))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    print(f"Starting registration service on port {port} ({app.store.name} store)...")
    app.run(host='0.0.0.0', port=port, debug=debug)


if __name__ == '__main__':
    run_service()
