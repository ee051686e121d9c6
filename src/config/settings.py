"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).

Remote collaborators are optional: when Power BI or GitHub settings are incomplete, the pipeline
runs against the local report document only and skips publishing.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from src.intent.dictionaries import DEFAULT_CATEGORIES, DEFAULT_VENDORS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    telegram_bot_token: str | None = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    report_path: Path = Field(default=Path("Coffee.Report/report.json"), alias="REPORT_PATH")

    powerbi_tenant_id: str | None = Field(default=None, alias="POWERBI_TENANT_ID")
    powerbi_client_id: str | None = Field(default=None, alias="POWERBI_CLIENT_ID")
    powerbi_client_secret: str | None = Field(default=None, alias="POWERBI_CLIENT_SECRET")
    powerbi_workspace_id: str | None = Field(default=None, alias="POWERBI_WORKSPACE_ID")
    powerbi_dataset_id: str | None = Field(default=None, alias="POWERBI_DATASET_ID")
    powerbi_report_id: str | None = Field(default=None, alias="POWERBI_REPORT_ID")
    powerbi_api_base: str = Field(default="https://api.powerbi.com/v1.0/myorg", alias="POWERBI_API_BASE")
    theme_update_url: str | None = Field(default=None, alias="THEME_UPDATE_URL")

    remote_timeout_s: float = Field(default=30.0, gt=0, alias="REMOTE_TIMEOUT_S")
    export_poll_interval_s: float = Field(default=5.0, gt=0, alias="EXPORT_POLL_INTERVAL_S")
    export_max_polls: int = Field(default=60, ge=1, alias="EXPORT_MAX_POLLS")

    llm_enabled: bool = Field(default=False, alias="LLM_ENABLED")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")

    github_token: str | None = Field(default=None, alias="GITHUB_TOKEN")
    github_repo: str | None = Field(default=None, alias="GITHUB_REPO")
    github_branch: str = Field(default="main", alias="GITHUB_BRANCH")
    github_file_path: str = Field(default="Coffee.Report/report.json", alias="GITHUB_FILE_PATH")

    vendors: Annotated[tuple[str, ...], NoDecode] = Field(default=DEFAULT_VENDORS, alias="VENDORS")
    categories: Annotated[tuple[str, ...], NoDecode] = Field(default=DEFAULT_CATEGORIES, alias="CATEGORIES")

    @field_validator("vendors", "categories", mode="before")
    @classmethod
    def split_comma_separated(cls, value: object) -> object:
        """Accept `VENDORS=Costa,Starbucks` style lists."""

        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return value

    @field_validator("github_repo")
    @classmethod
    def validate_github_repo(cls, value: str | None) -> str | None:
        """Require the `owner/name` form."""

        if value is not None and value.count("/") != 1:
            raise ValueError("GITHUB_REPO must look like owner/name")
        return value

    @model_validator(mode="after")
    def validate_llm_config(self) -> Settings:
        """Validate the optional LLM parser configuration.

        If LLM intent parsing is enabled, an API key must be provided.
        """

        if self.llm_enabled and not self.llm_api_key:
            raise ValueError("LLM_API_KEY is required when LLM_ENABLED=true")
        return self

    @model_validator(mode="after")
    def validate_vocabulary(self) -> Settings:
        """A comparison needs at least two vendors to fall back on."""

        if len(self.vendors) < 2:
            raise ValueError("VENDORS must list at least two vendors")
        return self

    @property
    def powerbi_configured(self) -> bool:
        """Whether every identifier needed for Power BI calls is present."""

        return all(
            (
                self.powerbi_tenant_id,
                self.powerbi_client_id,
                self.powerbi_client_secret,
                self.powerbi_workspace_id,
                self.powerbi_dataset_id,
            )
        )

    @property
    def publish_configured(self) -> bool:
        return bool(self.github_token and self.github_repo)


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is missing or invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        # Raising here is fine: caller can decide how to handle startup errors.
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
