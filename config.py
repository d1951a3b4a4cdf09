"""
Centralized Configuration Management

Guard settings are defined here using Pydantic Settings.
This provides validation, type safety, and documentation in one place.

Connection strings and the runtime mode are NOT read here: they are resolved
once per process by services.environment_resolver, which picks the dotenv
file matching the runtime mode.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils import split_csv


class Settings(BaseSettings):
    """
    Guard settings loaded from environment variables and the dotenv file of
    the runtime mode (.env by default)

    To use in your code:
        from config import get_settings
        policy = DatabaseSafetyPolicy.from_settings(get_settings(environment.source))
    """

    # Database safety policy
    TEST_DATABASE_MARKER: str = Field(
        default="test", description="Substring that marks a disposable test database"
    )
    DEV_DATABASE_IDENTIFIERS: str = Field(
        default="joyeria_elegante_dev,_dev",
        description="Comma-separated identifiers of the development database",
    )

    # Destructive scripts
    RESET_COUNTDOWN_SECONDS: int = Field(
        default=3, description="Seconds to wait before a reset so the operator can cancel"
    )
    SEQUENCE_RESET_ENABLED: bool = Field(
        default=True, description="Reset auto-increment sequences after a full reset"
    )

    # Application Settings
    DEBUG_LEVEL: int = Field(default=0, description="Debug verbosity level (0-3)")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("DEBUG_LEVEL")
    @classmethod
    def validate_debug_level(cls, v):
        if v not in [0, 1, 2, 3]:
            raise ValueError("DEBUG_LEVEL must be 0, 1, 2, or 3")
        return v

    @field_validator("TEST_DATABASE_MARKER")
    @classmethod
    def validate_test_marker(cls, v):
        if not v or not v.strip():
            raise ValueError("TEST_DATABASE_MARKER must not be empty")
        return v.strip()

    @field_validator("DEV_DATABASE_IDENTIFIERS")
    @classmethod
    def validate_dev_identifiers(cls, v):
        if not split_csv(v):
            raise ValueError("DEV_DATABASE_IDENTIFIERS must name at least one development database")
        return v

    @field_validator("RESET_COUNTDOWN_SECONDS")
    @classmethod
    def validate_countdown(cls, v):
        if v < 0:
            raise ValueError("RESET_COUNTDOWN_SECONDS must not be negative")
        return v

    def get_dev_database_identifiers(self) -> tuple[str, ...]:
        """Development database identifiers as a tuple"""
        return split_csv(self.DEV_DATABASE_IDENTIFIERS)


@lru_cache
def get_settings(env_file: str | None = ".env") -> Settings:
    """
    Build the settings once per dotenv file

    Pass the source resolved for the runtime mode so that policy values set
    in .env.test apply in test mode. Process variables still take precedence
    over the file.
    """
    return Settings(_env_file=env_file)
