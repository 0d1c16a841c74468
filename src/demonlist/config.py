"""Configuration for demonlist service."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    table_name: str = Field(
        default="demonlist", min_length=1, validation_alias="DEMONLIST_TABLE"
    )
    region: str = Field(default="us-east-1", validation_alias="AWS_DEFAULT_REGION")
    endpoint_url: str | None = Field(default=None, validation_alias="AWS_ENDPOINT_URL")
    jwt_secret: str | None = Field(default=None, validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    leaderboard_default_limit: int = Field(
        default=250, ge=1, le=500, validation_alias="LEADERBOARD_DEFAULT_LIMIT"
    )

    @field_validator("endpoint_url", "jwt_secret", mode="before")
    @classmethod
    def blank_is_unset(cls, v: object) -> object:
        """An empty variable counts as not configured."""
        return None if v == "" else v


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings."""
    return Settings()
