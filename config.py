import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default='False'):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'a-very-secret-key'

    # CSRF Protection
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = 3600  # 1 hour
    WTF_CSRF_CHECK_DEFAULT = False

    # Prioritize the production DATABASE_URL, with SQLite as a fallback.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(os.path.abspath(os.path.dirname(__file__)), 'instance', 'app.db')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Debug mode - only enable in development environment
    DEBUG = _env_flag('FLASK_DEBUG')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # Calendar days for badge records are cut in this timezone.
    SCHOOL_TIMEZONE = os.environ.get('SCHOOL_TIMEZONE') or 'Asia/Tashkent'

    # How many of a student's most recent daily records feed a badge report
    BADGE_REPORT_LIMIT = int(os.environ.get('BADGE_REPORT_LIMIT', 30))

    # Telegram transport
    NOTIFICATION_DELIVERY_ENABLED = _env_flag('NOTIFICATION_DELIVERY_ENABLED', 'True')
    TELEGRAM_BOT_TOKEN = os.environ.get('TELEGRAM_BOT_TOKEN')
    TELEGRAM_API_BASE = os.environ.get('TELEGRAM_API_BASE') or 'https://api.telegram.org'
    TELEGRAM_TIMEOUT = float(os.environ.get('TELEGRAM_TIMEOUT', 5))

    # Shared secret the bot front-end sends as X-Bot-Token
    BOT_API_TOKEN = os.environ.get('BOT_API_TOKEN')


class ProductionConfig(Config):
    """Production configuration with enhanced security."""
    DEBUG = False  # Always False in production
    TESTING = False

    SESSION_COOKIE_SECURE = True  # Only send cookies over HTTPS
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour session timeout


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'  # In-memory database for tests
    WTF_CSRF_ENABLED = False
    NOTIFICATION_DELIVERY_ENABLED = False
    BOT_API_TOKEN = None
    SCHOOL_TIMEZONE = 'Asia/Tashkent'
