"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import pydantic
import yaml
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    """Configuration for the relational store."""

    url: str = "sqlite:///reconciliation.db"
    echo: bool = False


class IngestionConfig(BaseModel):
    """Configuration for streaming file ingestion."""

    encoding: str = "utf-8"
    delimiter: str = ","
    ledger_batch_size: int = Field(default=100, gt=0)


class MatchingConfig(BaseModel):
    """Configuration for the matching engine."""

    selection_policy: str = "tail"


class PersistenceConfig(BaseModel):
    """Configuration for reconciliation result writes."""

    chunk_size: int = Field(default=1000, gt=0)


class StorageConfig(BaseModel):
    """Configuration for the local object store holding uploaded files."""

    base_dir: str = "data"
    upload_prefix: str = "uploads"


class EventsConfig(BaseModel):
    """Topic names used to chain compilation into reconciliation."""

    compiler_topic: str = "compiler-events"
    recon_topic: str = "reconciliation-events"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    unmatched_internal: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Internal")
    )
    unmatched_bank: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Unmatched Bank"))


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "reconciliation_{task_id}_{date}.xlsx"


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    file_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    file_backup_count: int = Field(default=5, ge=0)


class ReconConfig(BaseSettings):
    """
    Main configuration model for reconciliation.

    Values come from the YAML file (merged over the defaults) and can be
    overridden per field from the environment, e.g.
    ``RECON_DATABASE__URL`` or ``RECON_INGESTION__LEDGER_BATCH_SIZE``.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECON_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over the merged YAML passed as init values
        return env_settings, init_settings


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "database": {
            "url": "sqlite:///reconciliation.db",
            "echo": False,
        },
        "ingestion": {
            "encoding": "utf-8",
            "delimiter": ",",
            "ledger_batch_size": 100,
        },
        "matching": {
            "selection_policy": "tail",
        },
        "persistence": {
            "chunk_size": 1000,
        },
        "storage": {
            "base_dir": "data",
            "upload_prefix": "uploads",
        },
        "events": {
            "compiler_topic": "compiler-events",
            "recon_topic": "reconciliation-events",
        },
        "output": {
            "excel": {
                "filename_template": "reconciliation_{task_id}_{date}.xlsx",
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "unmatched_internal": {"enabled": True, "name": "Unmatched Internal"},
                "unmatched_bank": {"enabled": True, "name": "Unmatched Bank"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
            "file_max_bytes": 10 * 1024 * 1024,
            "file_backup_count": 5,
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read {config_path}: {e}", stage="load_config") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"{config_path} must contain a mapping at the top level", stage="load_config"
            )

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except pydantic.ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", stage="load_config") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    yaml_content = """# Ledger / Bank Statement Reconciliation Configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(get_default_config(), default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
