"""
JSON file key/value storage.

The whole store is a single JSON object on disk. It is re-read on every
access and rewritten through a temporary file on every change, so several
processes can share the file without caching stale state.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Dict, List

from core.config import Config
from storage.base import KeyValueStorage

logger = logging.getLogger(__name__)


class JsonFileStorage(KeyValueStorage):
    """Key/value storage persisted to a JSON file."""

    def __init__(self, path: str = None):
        """
        Args:
            path: JSON file location (defaults to Config.PROGRESS_STORE_PATH)
        """
        self.path = Path(path or Config.PROGRESS_STORE_PATH)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"❌ Failed to read storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"⚠️ Storage file {self.path} does not hold an object; ignoring it")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> List[str]:
        return list(self._read())
