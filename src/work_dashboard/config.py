"""Configuration for WorkDashboard."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_FILE_ENV = "WORK_DASHBOARD_CONFIG_FILE"


class Config(BaseSettings):
    """Application configuration.

    Values come from (highest priority first) constructor arguments,
    ``WORK_DASHBOARD_*`` environment variables and an optional YAML file.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORK_DASHBOARD_",
        yaml_file=os.environ.get(CONFIG_FILE_ENV, "work-dashboard.yaml"),
        extra="ignore",
    )

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".work-dashboard")
    guest_dir_name: str = Field(default="work-dashboard")
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    timezone: str | None = Field(default=None)  # IANA name, None = host local
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Read init args, then env, then the YAML file."""
        return (init_settings, env_settings, YamlConfigSettingsSource(settings_cls))

    @property
    def users_dir(self) -> Path:
        """Directory holding one sub-directory per authenticated identity."""
        return self.data_dir / "users"
