"""
Configuration management for photo-ratings.

Settings come from (in increasing priority) dataclass defaults, a YAML
file and ``PHOTO_RATINGS_<SECTION>__<KEY>`` environment variables.

Example:
    >>> from photo_ratings.config import get_config
    >>> config = get_config()
    >>> config.storage.raw_folder
    'raw'
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from photo_ratings.identity import JPG_EXTENSIONS, RAW_EXTENSIONS

logger = logging.getLogger(__name__)

ENV_PREFIX = "PHOTO_RATINGS_"

# Default locations to search for a config file
CONFIG_SEARCH_PATHS = [
    Path("photo_ratings.yaml"),
    Path.home() / ".photo_ratings" / "config.yaml",
]


@dataclass
class StorageConfig:
    """
    Where the per-collection rating store lives.

    Attributes:
        npo_folder: Hidden folder created inside each collection
        db_name: SQLite file name inside ``npo_folder``
        raw_folder: Name of the RAW subfolder (matched case-insensitively)
        echo: Echo SQL statements (debugging)
    """
    npo_folder: str = "_npo"
    db_name: str = "ratings.db"
    raw_folder: str = "raw"
    echo: bool = False


@dataclass
class FormatsConfig:
    """File extensions treated as JPG and RAW images."""
    jpg_extensions: List[str] = field(default_factory=lambda: list(JPG_EXTENSIONS))
    raw_extensions: List[str] = field(default_factory=lambda: list(RAW_EXTENSIONS))


@dataclass
class ProcessingConfig:
    """Batch processing settings."""
    max_workers: int = 4


@dataclass
class WebConfig:
    """Configuration for the HTTP API."""
    host: str = "127.0.0.1"
    port: int = 5200


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Main configuration class."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    formats: FormatsConfig = field(default_factory=FormatsConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary. Missing sections keep their defaults."""
        return cls(
            storage=StorageConfig(**data.get("storage", {})),
            formats=FormatsConfig(**data.get("formats", {})),
            processing=ProcessingConfig(**data.get("processing", {})),
            web=WebConfig(**data.get("web", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def load_from_file(cls, path: Union[str, Path]) -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML file

        Returns:
            Config with values from the file
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    def save_to_file(self, path: Union[str, Path]) -> None:
        """Write the configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    def update_from_env(self) -> None:
        """
        Update configuration from environment variables.

        Variables are prefixed with ``PHOTO_RATINGS_`` and use a double
        underscore between section and key, e.g.
        ``PHOTO_RATINGS_PROCESSING__MAX_WORKERS=8``. List settings take a
        comma separated value.
        """
        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split("__")
            if len(parts) != 2:
                continue

            section, setting = parts
            section_obj = getattr(self, section, None)
            if section_obj is None or not hasattr(section_obj, setting):
                continue

            current_value = getattr(section_obj, setting)
            if isinstance(current_value, bool):
                value = value.lower() in ("true", "1", "yes", "on")
            elif isinstance(current_value, int):
                value = int(value)
            elif isinstance(current_value, list):
                value = [item.strip() for item in value.split(",") if item.strip()]

            setattr(section_obj, setting, value)


def find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """
    Locate the config file to load.

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist
    """
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for path in CONFIG_SEARCH_PATHS:
        if path.exists():
            return path
    return None


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment and make it global.

    Without an explicit path the default locations are searched; when none
    exists the defaults are used.

    Args:
        config_path: Specific config file to load

    Returns:
        The loaded Config
    """
    path = find_config_file(config_path)
    if path is None:
        config = Config()
    else:
        logger.info("Loading config from %s", path)
        config = Config.load_from_file(path)

    config.update_from_env()
    set_config(config)
    return config


_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration, loading it on first use."""
    global _global_config
    if _global_config is None:
        try:
            load_config()
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Failed to load config, using defaults: %s", e)
            _global_config = Config()
            _global_config.update_from_env()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config
