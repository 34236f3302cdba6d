"""Environment defaults using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class AirtableSettings(BaseSettings):
    """Connection defaults read from `AIRTABLE_*` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AIRTABLE_",
        extra="ignore",
    )

    api_key: str | None = None
    base_id: str | None = None
    table_name: str | None = None


def environment_defaults() -> dict[str, str]:
    """Settings present in the environment, ready to seed a `Config`."""
    return AirtableSettings().model_dump(exclude_none=True)
