"""
Config system - Layered configuration for Satchel.

Loads and merges settings from files, a .env file, environment variables
and explicit overrides, then resolves the typed SessionConfig from the
``sessions`` section.
"""

from __future__ import annotations

import json
import logging
import os
from glob import glob
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import dotenv_values

from .sessions.faults import SessionConfigFault
from .sessions.policy import SessionConfig

logger = logging.getLogger("satchel.config")

# Values read verbatim from the environment
_RAW_KEYS = frozenset({"secret", "secret_key"})


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files

    Example:
        >>> loader = ConfigLoader.load(paths=["config/*.yaml"], env_file=".env")
        >>> loader.get("sessions.store")
        'redis'
        >>> session_config = loader.get_session_config()
    """

    def __init__(self, env_prefix: str = "SATCHEL_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "SATCHEL_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> ConfigLoader:
        """
        Load configuration from multiple sources.

        Merge order (later overrides earlier):
        1. Config files (JSON or YAML, glob patterns supported)
        2. .env file (prefixed keys only)
        3. Environment variables (prefixed keys only)
        4. Manual overrides

        Args:
            paths: List of config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        matches = sorted(glob(pattern))
        if not matches:
            logger.debug(f"No config files match '{pattern}'")

        for path_str in matches:
            path = Path(path_str)

            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                logger.warning(f"Skipping config file with unknown format: {path}")

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, dict):
            self._merge_dict(self.config_data, data)
        logger.debug(f"Loaded config file {path}")

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
        if data:
            self._merge_dict(self.config_data, data)
        logger.debug(f"Loaded config file {path}")

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            logger.debug(f"No .env file at {env_path}")
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert SATCHEL_SESSIONS__REDIS__URL to nested dict."""
        key = key[len(self.env_prefix):]

        # Double underscore separates nesting levels
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        # Secrets are key material; keep them byte-for-byte
        if parts[-1] in _RAW_KEYS:
            current[parts[-1]] = value
        else:
            current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()

    def get_session_config(self) -> SessionConfig:
        """
        Resolve the ``sessions`` section into a SessionConfig.

        The top-level ``secret_key`` is used when the section carries
        no secret of its own.

        Raises:
            SessionConfigFault: If the section is missing or invalid
        """
        section = self.get("sessions")
        if not isinstance(section, dict):
            raise SessionConfigFault("Missing 'sessions' configuration section")

        section = dict(section)
        if not section.get("secret") and not section.get("secret_key"):
            section["secret"] = self.get("secret_key")

        # YAML and JSON files may carry an all-digit secret as a number
        for key in ("secret", "secret_key"):
            if isinstance(section.get(key), (int, float)):
                section[key] = str(section[key])

        return SessionConfig.from_dict(section)
