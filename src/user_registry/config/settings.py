from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import to_uppercase, to_lowercase, strip_trailing_slash

class Settings(BaseSettings):
    """
    Application settings loaded from environment.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database configuration
    POSTGRES_DRIVER: str = "asyncpg"
    POSTGRES_USERNAME: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # Test database configuration
    TEST_POSTGRES_DB: str | None = None
    TESTING: bool = False

    # Full SQLAlchemy URL; when set it wins over the POSTGRES_* fields
    # (e.g. "sqlite+aiosqlite:///./registry.db" for local runs)
    DATABASE_URL_OVERRIDE: str | None = None

    # SQLAlchemy
    SQLALCHEMY_ECHO: bool = False

    # HTTP
    API_PREFIX: str = "/api/v1"

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/user-registry")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # --- Derived settings ---
    @property
    def DATABASE_URL(self) -> str:
        """
        Return the appropriate database URL based on the current environment.

        The logic is as follows:
        - If `DATABASE_URL_OVERRIDE` is set it is returned unchanged.
        - If `TESTING=True` and `TEST_POSTGRES_DB` is provided, the database URL will be
        constructed using the test database (`TEST_POSTGRES_DB`) to avoid using the
        production database during tests.
        - Otherwise the URL points at the regular database (`POSTGRES_DB`).

        Returns:
            str: The constructed database connection URL.
        """
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE

        # If testing and TEST_POSTGRES_DB is provided, prefer it
        database = self.POSTGRES_DB
        if self.TESTING and self.TEST_POSTGRES_DB:
            database = self.TEST_POSTGRES_DB

        return (
            f"postgresql+{self.POSTGRES_DRIVER}://"
            f"{self.POSTGRES_USERNAME}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{database}"
        )

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_LEVEL environment variable value to uppercase.

        This validator runs before any other validation (mode="before") on the LOG_LEVEL field.
        The logging system expects level names in uppercase (e.g., "DEBUG", "INFO").

        Args:
            cls: The class where this validator is defined.
            v (str | None): The raw input value for LOG_LEVEL from the environment or user input.

        Returns:
            str | None: The normalized uppercase log level string, or None if input was None.
        """
        return to_uppercase(v)

    @field_validator("LOG_FORMAT", mode="before")
    def normalize_log_format(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_FORMAT environment variable value to lowercase.
        """
        return to_lowercase(v)

    @field_validator("API_PREFIX", mode="before")
    def normalize_api_prefix(cls, v: str | None) -> str | None:
        """
        "/api/v1/" and "/api/v1" mount the routers at the same place.
        """
        return strip_trailing_slash(v)

    # --- Config settings ---
    model_config = SettingsConfigDict(
        # Load environment variables from the .env file at the package root.
        env_file=str(Path(__file__).parent.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

# get_settings() takes no arguments and always returns the same settings from the environment,
# so it is cached with @lru_cache(). Tests that change the environment call get_settings.cache_clear().
@lru_cache()
def get_settings() -> Settings:
    return Settings()
