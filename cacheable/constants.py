from __future__ import annotations

from typing import TypeVar

# type for cached values
T = TypeVar('T')


class DriverError(Exception):
    """Base class for errors raised by a storage driver."""
    pass


class CacheNotFound(DriverError):
    """Exception raised when a cache key is not found."""
    def __init__(self, key: str):
        super().__init__(f"Cache key '{key}' not found")
        self.key = key


class KeyExists(DriverError):
    """Exception raised when an atomic set finds the key already present."""
    def __init__(self, key: str):
        super().__init__(f"Cache key '{key}' already exists")
        self.key = key


class SerializationError(Exception):
    """Exception raised when a value cannot be serialized."""
    pass


class DeserializationError(Exception):
    """Exception raised when cached bytes cannot be turned back into a value."""
    pass
