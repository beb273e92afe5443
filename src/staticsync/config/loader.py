"""Configuration loader for JSON/YAML files and environment variables."""

import os
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union, List

from pydantic import ValidationError

from .schema import SyncConfig
from .settings import get_settings, DEFAULT_CONFIG_FILE
from ..utils.logging import get_logger


# Searched in order when no config file is given explicitly
DEFAULT_CONFIG_CANDIDATES = [
    DEFAULT_CONFIG_FILE,
    "~/.staticsync.yaml",
    "~/.staticsync.yml",
]


class ConfigurationError(Exception):
    """Raised when configuration loading fails."""
    pass


class ConfigLoader:
    """Loads and validates pair configuration from files or dictionaries."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def load_from_file(self, file_path: Union[str, Path]) -> SyncConfig:
        """Load configuration from a JSON or YAML file.

        Args:
            file_path: Path to configuration file

        Returns:
            Validated SyncConfig object

        Raises:
            ConfigurationError: If file cannot be read, parsed or validated
        """
        file_path = Path(file_path).expanduser()

        if not file_path.is_file():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        self.logger.info("Loading configuration from file", file_path=str(file_path))

        suffix = file_path.suffix.lower()
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if suffix in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                else:
                    # Dotfiles such as ~/.staticsync.json may carry no suffix at all
                    data = json.load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format in {file_path}: {e}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format in {file_path}: {e}")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {file_path}: {e}")

        return self.load_from_dict(data, source=str(file_path))

    def load_from_dict(self, data: Any, source: str = "<dict>") -> SyncConfig:
        """Load configuration from already-parsed data.

        A bare list is taken as the list of pairs.
        """
        if isinstance(data, list):
            data = {"files": data}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {source}")
        if "files" not in data and "pairs" not in data:
            raise ConfigurationError(f"Configuration has no 'files' list: {source}")

        try:
            config = SyncConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {source}: {e}")

        self.logger.info(
            "Configuration loaded successfully",
            source=source,
            pairs_count=len(config.pairs),
            interval_seconds=config.interval_seconds,
            once=config.once
        )
        return config

    def apply_overrides(self, config: SyncConfig, **overrides: Any) -> SyncConfig:
        """Apply command-line overrides on top of a loaded configuration.

        Arguments left as ``None`` keep the configured value.
        """
        applied = {k: v for k, v in overrides.items() if v is not None}
        if not applied:
            return config

        try:
            config = config.override(**applied)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid override: {e}")

        self.logger.info("Applied configuration overrides", overrides=sorted(applied))
        return config

    def find_config_file(self, explicit: Optional[Union[str, Path]] = None) -> Path:
        """Locate the configuration file.

        Looks in this order:
        1. The explicit path, if given
        2. STATICSYNC_CONFIG_FILE
        3. ~/.staticsync.json, ~/.staticsync.yaml, ~/.staticsync.yml

        Raises:
            ConfigurationError: If no configuration file exists
        """
        if explicit:
            path = Path(explicit).expanduser()
            if not path.is_file():
                raise ConfigurationError(f"Configuration file not found: {path}")
            return path

        env_file = get_settings().config_file
        if env_file:
            path = Path(env_file).expanduser()
            if not path.is_file():
                raise ConfigurationError(f"Configuration file not found: {path}")
            return path

        for candidate in DEFAULT_CONFIG_CANDIDATES:
            path = Path(candidate).expanduser()
            if path.is_file():
                self.logger.debug("Found configuration file", file=str(path))
                return path

        raise ConfigurationError(
            f"Missing config file: create {Path(DEFAULT_CONFIG_FILE).expanduser()} or pass --config"
        )

    def validate_config(self, config: SyncConfig) -> List[str]:
        """Check configured paths against the filesystem.

        Missing files and directories are not fatal; the reconciler reports
        them on every cycle until they are fixed.

        Returns:
            List of validation warnings
        """
        warnings = []

        if not config.pairs:
            warnings.append("No file pairs configured")

        seen: Dict[frozenset, int] = {}
        for index, pair in enumerate(config.pairs):
            key = frozenset(
                os.path.normcase(os.path.realpath(p)) for p in (pair.a, pair.b)
            )
            if key in seen:
                warnings.append(f"Pair #{index + 1} duplicates pair #{seen[key] + 1}: {pair}")
            else:
                seen[key] = index

            for path in (pair.a, pair.b):
                if not path.exists():
                    warnings.append(f"File \"{path}\" does not exist")
                elif path.is_dir():
                    warnings.append(f"Path \"{path}\" is a directory")

        if warnings:
            self.logger.warning("Configuration validation warnings", warnings=warnings)
        else:
            self.logger.info("Configuration validation passed")

        return warnings


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    **overrides: Any
) -> SyncConfig:
    """Find, load and override the configuration in one call."""
    loader = ConfigLoader()
    path = loader.find_config_file(config_file)
    config = loader.load_from_file(path)
    return loader.apply_overrides(config, **overrides)
