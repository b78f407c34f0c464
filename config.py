import os
import secrets
import warnings

import redis
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ["true", "on", "1"]


class Config:
    # Generate a secure key if not provided (with a warning)
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "🔐 SECRET_KEY not set! Using auto-generated key. "
            "This will cause sessions to reset on app restart. "
            "Run 'python3 generate_secrets.py' to generate a secure key.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI and cache backend"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()
        if self.CACHE_TYPE == "RedisCache":
            self._check_redis_cache()

    def _check_redis_cache(self):
        """Fall back to a file cache, still shared by every process on the host,
        when Redis does not answer"""
        try:
            redis_client = redis.Redis.from_url(
                self.CACHE_REDIS_URL, socket_connect_timeout=1
            )
            redis_client.ping()
        except redis.exceptions.RedisError:
            self.CACHE_TYPE = "FileSystemCache"
            warnings.warn(
                f"🔶 Redis not available, falling back to FileSystemCache in "
                f"{self.CACHE_DIR}. Standings are shared only between processes "
                "on this host.",
                UserWarning,
            )

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "podium_db"
            db_user = os.environ.get("DB_USER") or "podium_user"
            db_password = os.environ.get("DB_PASSWORD") or "podium_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "podium.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Scoring: maximum points per correctly placed driver, by lock tier.
    # Stamped onto each stored pick at submission time.
    LOCK_TIER_POINTS = {
        "fp1": int(os.environ.get("POINTS_FP1") or 20),
        "qualifying": int(os.environ.get("POINTS_QUALIFYING") or 15),
        "race": int(os.environ.get("POINTS_RACE") or 10),
    }

    # Application settings
    UPCOMING_RACES_LIMIT = int(os.environ.get("UPCOMING_RACES_LIMIT") or 24)
    TIMEZONE = os.environ.get("TIMEZONE", "UTC")  # Default to UTC if not specified

    # Caching configuration
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = int(
        os.environ.get("CACHE_DEFAULT_TIMEOUT", 300)
    )  # 5 minutes
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_DIR = os.environ.get("CACHE_DIR") or os.path.join(basedir, ".cache")
    CACHE_KEY_PREFIX = "podium:"
    STANDINGS_CACHE_TIMEOUT = int(os.environ.get("STANDINGS_CACHE_TIMEOUT", 600))

    # Rate limiting
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "True")
    RATELIMIT_DEFAULT = os.environ.get(
        "RATELIMIT_DEFAULT", "10000 per day;1000 per hour"
    )
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = _env_flag("LOG_TO_CONSOLE", "True")
    LOG_TO_FILE = _env_flag("LOG_TO_FILE", "True")
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    # In production, require explicit environment variables
    def __init__(self):
        super().__init__()  # Call parent __init__ to build database URI

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "🚨 PRODUCTION WARNING: SECRET_KEY not explicitly set! "
                "Using auto-generated key is not recommended for production.",
                UserWarning,
            )
        if self.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            warnings.warn(
                "🚨 PRODUCTION WARNING: running on SQLite. Row-level locks on "
                "prediction submission are only enforced by PostgreSQL.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    RATELIMIT_ENABLED = False
    LOG_TO_FILE = False
    LOG_TO_CONSOLE = False
    CACHE_TYPE = "SimpleCache"

    def __init__(self):
        # In-memory database regardless of DATABASE_URL
        pass


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
