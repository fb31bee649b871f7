import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base Flask configuration shared across environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-key-change-this-in-production"

    # Use the built-in country/region gateway mapping instead of an empty registry
    USE_DEFAULT_REGISTRY = os.environ.get("USE_DEFAULT_REGISTRY", "1") == "1"


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    USE_DEFAULT_REGISTRY = False


class ProductionConfig(Config):
    DEBUG = False
