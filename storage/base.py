"""
Key/value storage capability.

Progress and other device-local state are persisted through this
interface so services never touch a concrete backend directly. Values are
strings, mirroring browser local storage.
"""

from abc import ABC, abstractmethod
from typing import Optional, List


class KeyValueStorage(ABC):
    """Abstract string key/value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value under key, replacing any previous one."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""

    @abstractmethod
    def keys(self) -> List[str]:
        """All stored keys."""
