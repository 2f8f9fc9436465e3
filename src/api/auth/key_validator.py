"""
Parent application key validator.

Each application that embeds the widget gets its own bearer key. Keys come
from API_KEYS (comma-separated, optionally "name:key") or from a JSON file
at API_KEYS_FILE holding a list of keys, {"keys": [...]}, or
{"keys": {"<app name>": "<key>"}}. The environment variable wins when both
are set.
"""

import json
import os
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

UNNAMED_APP = "default"


def _parse_env_entry(entry: str) -> tuple[str, str]:
    name, sep, key = entry.partition(":")
    if sep and name.strip() and key.strip():
        return key.strip(), name.strip()
    return entry.strip(), UNNAMED_APP


class APIKeyValidator:
    """
    Maps bearer keys to the parent application that owns them.
    """

    def __init__(
        self,
        env_var: str = "API_KEYS",
        file_path_env: str = "API_KEYS_FILE",
        keys: dict[str, str] | set[str] | None = None,
    ) -> None:
        """
        Initialize the validator.

        Args:
            env_var: Environment variable with comma-separated keys.
            file_path_env: Environment variable with the JSON keys file path.
            keys: Keys to use directly, either a set or a key -> app name map.
        """
        self._env_var = env_var
        self._file_path_env = file_path_env

        if keys is not None:
            self._apps = self._normalize(keys)
        else:
            self._apps = self._load_keys()

        logger.info(
            "APIKeyValidator initialized",
            key_count=len(self._apps),
            source="direct" if keys is not None else self._get_source(),
        )

    @staticmethod
    def _normalize(keys: dict[str, str] | set[str]) -> dict[str, str]:
        if isinstance(keys, dict):
            return dict(keys)
        return {key: UNNAMED_APP for key in keys}

    def _get_source(self) -> str:
        if os.getenv(self._env_var):
            return "environment"
        elif os.getenv(self._file_path_env):
            return "file"
        return "none"

    def _load_keys(self) -> dict[str, str]:
        env_keys = os.getenv(self._env_var)
        if env_keys:
            apps = dict(
                _parse_env_entry(entry) for entry in env_keys.split(",") if entry.strip()
            )
            logger.debug("Loaded API keys from environment", count=len(apps))
            return apps

        file_path = os.getenv(self._file_path_env)
        if file_path:
            return self._load_from_file(file_path)

        logger.warning("No API keys configured")
        return {}

    def _load_from_file(self, file_path: str) -> dict[str, str]:
        path = Path(file_path)
        if not path.exists():
            logger.warning("API keys file not found", path=file_path)
            return {}

        try:
            with open(path) as f:
                data: Any = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse API keys file", path=file_path, error=str(e))
            return {}
        except OSError as e:
            logger.error("Failed to read API keys file", path=file_path, error=str(e))
            return {}

        if isinstance(data, dict) and "keys" in data:
            data = data["keys"]

        if isinstance(data, list):
            apps = {str(key): UNNAMED_APP for key in data}
        elif isinstance(data, dict):
            apps = {str(key): str(name) for name, key in data.items()}
        else:
            logger.error("Invalid API keys file format", path=file_path)
            return {}

        logger.debug("Loaded API keys from file", count=len(apps), path=file_path)
        return apps

    def validate(self, key: str) -> bool:
        """Whether the key belongs to a configured parent application."""
        return self.identify(key) is not None

    def identify(self, key: str) -> str | None:
        """
        Name of the parent application owning the key.

        Returns:
            The application name, or None for empty or unknown keys.
        """
        if not key or not key.strip():
            return None
        return self._apps.get(key)

    def reload(self) -> None:
        """Reload keys from the configured source."""
        self._apps = self._load_keys()
        logger.info("API keys reloaded", count=len(self._apps))

    @property
    def key_count(self) -> int:
        return len(self._apps)
