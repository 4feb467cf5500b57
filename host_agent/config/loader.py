"""Configuration loader with YAML parsing and environment variable substitution."""

import json
import yaml
import os
import re
from pathlib import Path
from typing import Any
from .models import AgentConfig


class ConfigLoader:
    """Load, validate and persist host agent configuration."""

    @staticmethod
    def load_from_file(config_path: str) -> AgentConfig:
        """
        Load configuration from YAML (or JSON) file with environment variable substitution.

        Args:
            config_path: Path to configuration file

        Returns:
            AgentConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If parsing fails
            pydantic.ValidationError: If configuration validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        return AgentConfig(**raw_config)

    @staticmethod
    def save(config: AgentConfig, config_path: str) -> None:
        """
        Write configuration back to disk.

        Used to persist the resource id assigned at registration.

        Args:
            config: Configuration to write
            config_path: Destination path
        """
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        data = config.model_dump(mode="json", exclude_none=True)

        with open(config_file, 'w') as f:
            if config_file.suffix == '.json':
                json.dump(data, f, indent=2)
            else:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
