"""
Database configuration for TaskHub.

Resolution order:
- DATABASE_URL (postgres:// or postgresql://)
- Individual DB_* environment variables
- SQLite file next to manage.py for development and tests
"""
import os
import re
from pathlib import Path

DATABASE_URL_PATTERN = re.compile(
    r'postgres(?:ql)?://(?P<user>[^:]+):(?P<password>[^@]*)@(?P<host>[^:/]+)(?::(?P<port>\d+))?/(?P<name>[^?]+)'
)


def get_database_config(base_dir: Path) -> dict:
    """Return the Django DATABASES['default'] entry for the current environment."""
    database_url = os.getenv('DATABASE_URL', '')

    if database_url.startswith('postgres'):
        return _parse_database_url(database_url)

    if os.getenv('DB_HOST'):
        return _get_env_config()

    return {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv('SQLITE_PATH', str(base_dir / 'db.sqlite3')),
    }


def _parse_database_url(url: str) -> dict:
    match = DATABASE_URL_PATTERN.match(url)
    if not match:
        raise ValueError("Invalid DATABASE_URL format")

    config = {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': match.group('name'),
        'USER': match.group('user'),
        'PASSWORD': match.group('password'),
        'HOST': match.group('host'),
        'PORT': match.group('port') or '5432',
    }
    return _apply_runtime_options(config)


def _get_env_config() -> dict:
    config = {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.getenv('DB_NAME', 'taskhub'),
        'USER': os.getenv('DB_USER', 'postgres'),
        'HOST': os.getenv('DB_HOST', 'localhost'),
        'PORT': os.getenv('DB_PORT', '5432'),
    }

    password = os.getenv('DB_PASSWORD')
    if password:
        config['PASSWORD'] = password

    return _apply_runtime_options(config)


def _apply_runtime_options(config: dict) -> dict:
    """Connection tuning shared by both PostgreSQL sources."""
    if os.getenv('AWS_LAMBDA_FUNCTION_NAME'):
        # Short-lived containers: no persistent connections
        config['CONN_MAX_AGE'] = 0
        config['OPTIONS'] = {
            'connect_timeout': 5,
            'options': '-c statement_timeout=30000',
        }
    else:
        config['CONN_MAX_AGE'] = int(os.getenv('DB_CONN_MAX_AGE', '60'))
    return config
