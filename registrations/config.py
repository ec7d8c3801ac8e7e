import os


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', 'on', '1')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-prod')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Remote relational service (PostgREST). Both values present selects the remote store.
    SUPABASE_URL = os.getenv('SUPABASE_URL', '')
    SUPABASE_KEY = (
        os.getenv('SUPABASE_KEY')
        or os.getenv('SUPABASE_SERVICE_ROLE_KEY')
        or os.getenv('SUPABASE_API_KEY', '')
    )
    SUPABASE_TABLE = os.getenv('SUPABASE_TABLE', 'registrations')
    SUPABASE_TIMEOUT = float(os.getenv('SUPABASE_TIMEOUT', '10'))

    # Embedded store
    DATABASE_PATH = os.getenv('DATABASE_PATH', os.path.join(os.getcwd(), 'rpl.db'))

    # Uploaded evidence (passport photos, payment screenshots)
    UPLOADS_DIR = os.getenv('UPLOADS_DIR', os.path.join(os.getcwd(), 'uploads'))

    # Verification emails
    MAIL_SERVER = os.getenv('MAIL_SERVER') or os.getenv('SMTP_HOST', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('MAIL_PORT') or os.getenv('SMTP_PORT') or 587)
    MAIL_USE_TLS = _env_flag('MAIL_USE_TLS', 'true')
    MAIL_USE_SSL = _env_flag('MAIL_USE_SSL', 'false')
    MAIL_USERNAME = os.getenv('MAIL_USERNAME') or os.getenv('SMTP_USER')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD') or os.getenv('SMTP_PASS')
    MAIL_SENDER_NAME = os.getenv('MAIL_SENDER_NAME', 'RPL Management')
    EVENT_NAME = os.getenv('EVENT_NAME', 'RPL')


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SUPABASE_URL = ''
    SUPABASE_KEY = ''
    MAIL_USERNAME = None
    MAIL_PASSWORD = None
    MAIL_SUPPRESS_SEND = True


class ProductionConfig(Config):
    DEBUG = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def remote_store_configured(settings) -> bool:
    """True when the remote relational service has both a URL and a key."""
    return bool(settings.get('SUPABASE_URL') and settings.get('SUPABASE_KEY'))


def mail_configured(settings) -> bool:
    return bool(settings.get('MAIL_USERNAME') and settings.get('MAIL_PASSWORD'))
