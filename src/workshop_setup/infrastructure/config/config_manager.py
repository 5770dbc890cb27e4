"""Configuration manager for loading and validating .workshop-setup.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from workshop_setup.domain.config import AppConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".workshop-setup.yml"


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


class ConfigManager:
    """Manages configuration from .workshop-setup.yml and environment variables

    Loads configuration with validation using Pydantic models. Configuration priority:
    1. Default values (defined in Pydantic models)
    2. .workshop-setup.yml file (searched from current directory upwards)
    3. Environment variables (WORKSHOP_STACK_NAME, AWS_REGION, WORKSHOP_PROFILE_PATH)
    4. CLI arguments (handled by CLI layer)
    """

    def __init__(self, config_path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize config manager

        Args:
            config_path: Path to .workshop-setup.yml (searches from current dir if None)
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ConfigurationError: If the file cannot be read or validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"  - {field}: {msg}")
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            ) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .workshop-setup.yml starting from current directory

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        """Load configuration from file and validate with Pydantic

        Raises:
            ConfigurationError: If the file is not valid YAML
            ValidationError: If configuration is invalid
        """
        config_dict: Dict[str, Any] = copy.deepcopy(AppConfig().model_dump(mode="json"))

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to read config from {self.config_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")
            for section, value in list(file_config.items()):
                if value is None:
                    # An empty section keeps its defaults
                    del file_config[section]
                elif isinstance(config_dict.get(section), dict) and not isinstance(value, dict):
                    raise ConfigurationError(
                        f"Section '{section}' in {self.config_path} must be a mapping"
                    )
            config_dict = self._merge_config(config_dict, file_config)
            logger.info(f"Loaded configuration from {self.config_path}")

        config_dict = self._apply_env_overrides(config_dict)
        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries"""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides"""
        if self.environ.get("WORKSHOP_STACK_NAME"):
            config["stack"]["name"] = self.environ["WORKSHOP_STACK_NAME"]

        if self.environ.get("AWS_REGION"):
            config["stack"]["region"] = self.environ["AWS_REGION"]

        if self.environ.get("WORKSHOP_PROFILE_PATH"):
            config["profile"]["path"] = self.environ["WORKSHOP_PROFILE_PATH"]

        return config
