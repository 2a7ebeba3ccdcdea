# src/pystars/services/configuration_service.py
"""
Configuration service for STARS connection settings.

Loads ConnectionConfig objects from YAML files of the form:

    stars:
      node_name: term1
      host: 127.0.0.1
      port: 6057
      keyword: "stars"      # or key_file: term1.key
      timeout: 30.0

The top-level ``stars`` section is optional; a flat mapping with the same
keys is accepted too.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from pystars.core.errors import ConfigError, ErrorCodes, wrap_external_error
from pystars.models.connection import DEFAULT_PORT, DEFAULT_TIMEOUT, ConnectionConfig

SECTION = "stars"
_KNOWN_KEYS = {"node_name", "host", "port", "keyword", "key_file", "timeout"}


class ConfigurationService:
    """
    Service for loading and saving STARS connection configuration.

    Attributes:
        logger: Logger instance
        base_path: Directory relative config paths are resolved against
    """

    def __init__(self, base_path: Optional[Union[str, Path]] = None):
        self.logger = logging.getLogger(__name__)
        self.base_path = Path(base_path) if base_path else Path.cwd()

    def _resolve(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.base_path / path

    def load_connection_config(self, path: Union[str, Path]) -> ConnectionConfig:
        """
        Load and validate a connection configuration file.

        Args:
            path: YAML file path

        Returns:
            ConnectionConfig: Validated configuration

        Raises:
            ConfigError: If the file is missing, not valid YAML, or its
                settings do not validate
        """
        file_path = self._resolve(path)
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise wrap_external_error(
                e,
                f"Could not read configuration file {file_path}: {e}",
                ConfigError,
                error_code=ErrorCodes.CONFIG_NOT_FOUND,
                path=str(file_path)
            ) from e
        except yaml.YAMLError as e:
            raise wrap_external_error(
                e,
                f"Configuration file {file_path} is not valid YAML: {e}",
                ConfigError,
                error_code=ErrorCodes.CONFIG_INVALID,
                path=str(file_path)
            ) from e

        config = self.config_from_dict(data)
        self.logger.info(f"Loaded STARS configuration from {file_path}")
        return config

    def config_from_dict(self, data: Any) -> ConnectionConfig:
        """
        Build a ConnectionConfig from parsed YAML data.

        Raises:
            ConfigError: If required keys are missing or values are invalid
        """
        if isinstance(data, dict) and isinstance(data.get(SECTION), dict):
            data = data[SECTION]
        if not isinstance(data, dict):
            raise ConfigError(
                "Configuration must be a mapping",
                error_code=ErrorCodes.CONFIG_INVALID
            )

        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            self.logger.warning(f"Ignoring unknown configuration keys: {sorted(unknown)}")

        for required in ("node_name", "host"):
            if not data.get(required):
                raise ConfigError(
                    f"Missing required setting: {required}",
                    setting_name=required,
                    error_code=ErrorCodes.CONFIG_INVALID
                )

        try:
            config = ConnectionConfig(
                node_name=str(data["node_name"]),
                host=str(data["host"]),
                port=int(data.get("port", DEFAULT_PORT)),
                keyword=str(data.get("keyword") or ""),
                key_file=str(data["key_file"]) if data.get("key_file") else None,
                timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Invalid configuration value: {e}",
                error_code=ErrorCodes.CONFIG_INVALID,
                cause=e
            ) from e

        valid, problems = config.validate()
        if not valid:
            raise ConfigError(
                f"Invalid connection configuration: {'; '.join(problems)}",
                error_code=ErrorCodes.CONFIG_INVALID
            )
        return config

    def save_connection_config(self, config: ConnectionConfig, path: Union[str, Path]) -> Path:
        """Write a configuration as YAML and return the written path."""
        data: Dict[str, Any] = {
            "node_name": config.node_name,
            "host": config.host,
            "port": config.port,
            "timeout": config.timeout,
        }
        if config.keyword:
            data["keyword"] = config.keyword
        if config.key_file:
            data["key_file"] = config.key_file

        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump({SECTION: data}, f, default_flow_style=False, sort_keys=False)
        self.logger.info(f"Saved STARS configuration to {file_path}")
        return file_path
