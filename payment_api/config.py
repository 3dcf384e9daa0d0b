import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DB_NAME = "payment_db"
DEFAULT_DB_USERNAME = "payment"
DEFAULT_DB_PASSWORD = "payment"
DEFAULT_DB_HOST = "localhost"
DEFAULT_DB_PORT = "5432"

DEFAULT_SERVER_HOST = "localhost"
DEFAULT_SERVER_PORT = "8080"

DEFAULT_LOG_LEVEL = "INFO"


def getenv_or_default(name: str, default: str) -> str:
    # Empty values count as unset
    value = os.getenv(name)
    if not value:
        return default
    return value


@dataclass(frozen=True)
class Settings:
    db_name: str = DEFAULT_DB_NAME
    db_username: str = DEFAULT_DB_USERNAME
    db_password: str = DEFAULT_DB_PASSWORD
    db_host: str = DEFAULT_DB_HOST
    db_port: int = int(DEFAULT_DB_PORT)
    db_echo: bool = False
    database_url_override: str = ""
    server_host: str = DEFAULT_SERVER_HOST
    server_port: int = int(DEFAULT_SERVER_PORT)
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_username}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_name=getenv_or_default("DB_NAME", DEFAULT_DB_NAME),
            db_username=getenv_or_default("DB_USERNAME", DEFAULT_DB_USERNAME),
            db_password=getenv_or_default("DB_PASSWORD", DEFAULT_DB_PASSWORD),
            db_host=getenv_or_default("DB_HOST", DEFAULT_DB_HOST),
            db_port=int(getenv_or_default("DB_PORT", DEFAULT_DB_PORT)),
            db_echo=getenv_or_default("DB_ECHO", "false").lower() in ("1", "true", "yes"),
            database_url_override=os.getenv("DATABASE_URL", ""),
            server_host=getenv_or_default("SERVER_HOST", DEFAULT_SERVER_HOST),
            server_port=int(getenv_or_default("SERVER_PORT", DEFAULT_SERVER_PORT)),
            log_level=getenv_or_default("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Settings are read from the environment once per process."""
    return Settings.from_env()
