import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "postgresql://localhost:5432/library"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"connect_timeout": 5},
    }

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Shared cache: "redis://host:6379/0", or empty / "memory://" for in-process
    CACHE_URL = os.environ.get("CACHE_URL", "")

    # API tokens (seconds)
    TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE", 24 * 60 * 60))

    # Loan settings
    DEFAULT_RETURN_DAYS = 14

    # Listing settings
    DEFAULT_PER_PAGE = 20
    MAX_PER_PAGE = 100
