"""Configuration classes for the Panel Peace application.

Usage:
    config_name = os.getenv("PANELPEACE_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

from dotenv import load_dotenv

load_dotenv()

# Generate a random key for development; production must set SECRET_KEY
_DEV_SECRET = secrets.token_hex(32)


def _database_url(default: str) -> str:
    raw = os.getenv("DATABASE_URL", "")
    if not raw:
        return default
    return raw.replace("postgres://", "postgresql://", 1)


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = _database_url("sqlite:///panelpeace.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    WTF_CSRF_ENABLED = True
    # Dashboard window for "upcoming" deadlines
    UPCOMING_DEADLINE_DAYS = int(os.getenv("UPCOMING_DEADLINE_DAYS", "7"))


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite://")
    WTF_CSRF_ENABLED = False


class ProductionConfig(Config):
    SECRET_KEY = os.getenv("SECRET_KEY")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
