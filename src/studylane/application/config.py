from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class AppConfig(BaseSettings):
    """
    Configuration model for studylane.
    Supports loading from:
    1. Environment variables (STUDYLANE_*)
    2. Config file (~/.config/studylane/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="STUDYLANE_",
        extra="ignore",
    )

    # Storage
    data_file: Path = Field(default_factory=lambda: Path.home() / ".config/studylane/data.yaml")
    owner_id: str = "local"
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/studylane/logs")

    # Study
    default_deck: str | None = None
    enable_fuzzing: bool = True

    verbose: int = 0

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Later sources lose: CLI overrides beat env, env beats the file.
        toml_file = Path.home() / ".config/studylane/config.toml"
        if toml_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_file", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("default_deck", mode="before")
    @classmethod
    def blank_deck_is_none(cls, v: Any) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/studylane/config.toml (if exists)
    3. Environment variables (STUDYLANE_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
