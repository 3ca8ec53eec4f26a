import logging
import os
import sys
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from archiver.error import ConfigurationError
from archiver.reference import ARCHIVE_SUFFIX

CONFIG_FILE_ENV = "ARCHIVER_CONFIG_FILE"


# =============================================================================
# Tool Configuration
# =============================================================================


class EngineConfig(BaseModel):
    """Container engine used for `pull` and `save`."""

    binary: str = "podman"  # Any engine with podman/docker compatible pull & save


class CompressionConfig(BaseModel):
    """Compressor the saved image stream is piped through."""

    binary: str = "xz"
    args: list[str] = ["-T0"]  # Use all cores
    suffix: str = ARCHIVE_SUFFIX


class OutputConfig(BaseModel):
    directory: Path = Path(".")
    keep_partial: bool = False  # Keep half-written archives when save fails


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "[%(levelname)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file: str | None = None  # Log to this file instead of stderr

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


# =============================================================================
# Application Configuration
# =============================================================================


def read_yaml_config(path: Path) -> dict[str, Any]:
    """Parse a YAML config file into a mapping.

    Raises:
        ConfigurationError: If the file is unreadable, is not valid YAML, or
            its top level is not a mapping.
    """
    try:
        data = yaml.safe_load(path.read_text())
    except (yaml.YAMLError, OSError) as e:
        raise ConfigurationError("Invalid configuration file", details=[str(e)]) from None

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Invalid configuration file",
            details=[f"{path}: expected a mapping, got {type(data).__name__}"],
        )
    return data


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by ARCHIVER_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Get the value for a field from the YAML config."""
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return all settings from YAML file."""
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load config from YAML file if specified."""
        config_file = os.environ.get(CONFIG_FILE_ENV)
        if config_file:
            path = Path(config_file).expanduser()
            if path.exists():
                return read_yaml_config(path)
        return {}


class Config(BaseSettings):
    engine: EngineConfig = EngineConfig()
    compression: CompressionConfig = CompressionConfig()
    output: OutputConfig = OutputConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="ARCHIVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # Allows ARCHIVER_ENGINE__BINARY=docker
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - ARCHIVER_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_config(config_file: Path | None = None, **overrides: Any) -> Config:
    """Build the effective config.

    Args:
        config_file: YAML file to read settings from. Exported through
            ARCHIVER_CONFIG_FILE so the YAML source picks it up.
        **overrides: Top-level values with the highest priority.

    Raises:
        ConfigurationError: If the config file is missing or malformed, or
            settings fail validation.
    """
    if config_file is not None:
        if not config_file.expanduser().is_file():
            raise ConfigurationError(f"Config file not found: {config_file}")
        read_yaml_config(config_file.expanduser())
        os.environ[CONFIG_FILE_ENV] = str(config_file)

    try:
        return Config(**overrides)
    except ValidationError as e:
        details = []
        for err in e.errors():
            loc = ".".join(str(x) for x in err.get("loc", []))
            msg = err.get("msg", "Unknown error")
            details.append(f"{loc}: {msg}")
        raise ConfigurationError("Invalid configuration", details=details) from None


def configure_logging(config: LoggingConfig, *, debug: bool = False) -> None:
    """Configure Python logging based on config.

    Args:
        config: Logging section of the app config.
        debug: Force DEBUG level regardless of the configured level.
    """
    level = logging.DEBUG if debug else config.level.upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    handler: logging.Handler
    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
