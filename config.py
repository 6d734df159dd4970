# config.py
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        value = float(os.getenv(name, default))
    except ValueError:
        return default
    # requests rejects zero or negative timeouts outright.
    return value if value > 0 else default


@dataclass
class Config:
    """Holds all application configuration."""
    OMDB_API_URL: str = "https://www.omdbapi.com/"
    OMDB_API_KEY: Optional[str] = None
    REQUEST_TIMEOUT: float = 10.0
    DATABASE_FILENAME: str = "findmovie_storage.db"
    FAVORITES_KEY: str = "favorites"
    LOAD_MORE_THRESHOLD: int = 3
    LOG_FILENAME: str = "findmovie.log"
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Config":
        """Builds a Config from the environment, reading a .env file first if present."""
        load_dotenv(env_file)
        defaults = cls()
        return cls(
            OMDB_API_URL=os.getenv("OMDB_API_URL", defaults.OMDB_API_URL),
            OMDB_API_KEY=os.getenv("OMDB_API_KEY") or None,
            REQUEST_TIMEOUT=_float_env("FINDMOVIE_TIMEOUT", defaults.REQUEST_TIMEOUT),
            DATABASE_FILENAME=os.getenv("FINDMOVIE_DB", defaults.DATABASE_FILENAME),
            LOAD_MORE_THRESHOLD=_int_env("FINDMOVIE_LOAD_MORE_THRESHOLD", defaults.LOAD_MORE_THRESHOLD),
            LOG_FILENAME=os.getenv("FINDMOVIE_LOG", defaults.LOG_FILENAME),
            LOG_LEVEL=os.getenv("FINDMOVIE_LOG_LEVEL", defaults.LOG_LEVEL).upper(),
        )
