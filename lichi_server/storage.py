"""Key-value persistence for storefront state."""

import json
import os
from pathlib import Path
from typing import Optional, Protocol
import logging

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String key-value store consumed by the cart store."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryStore:
    """In-process store, lost on exit."""

    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore:
    """Stores all keys in a single JSON object on disk."""

    def __init__(self, path: Optional[str] = None) -> None:
        """
        Initialize the file store.

        Args:
            path: Path of the store file. Defaults to ~/.lichi_store.json
        """
        if path is None:
            path = str(Path.home() / ".lichi_store.json")
        self.path = path
        self.data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        """Load stored values from file if it exists."""
        if os.path.exists(self.path):
            try:
                with open(self.path, "r") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    logger.info(f"Loaded store from {self.path}")
                    return {key: value for key, value in data.items() if isinstance(value, str)}
                logger.warning(f"Ignoring store file {self.path}: not a JSON object")
            except (OSError, json.JSONDecodeError) as e:
                # If file is corrupted, start fresh
                logger.warning(f"Could not load store file {self.path}: {e}")
        return {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        """
        Store a value and rewrite the file.

        Raises:
            OSError: If the file cannot be written
        """
        data = dict(self.data)
        data[key] = value
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
        # Set restrictive permissions on store file
        os.chmod(self.path, 0o600)
        self.data = data
