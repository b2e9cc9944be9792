from __future__ import annotations

import hashlib
import json

from abc import ABC, abstractmethod
from typing import Callable

from cacheable.serializers import CacheJSONEncoder

class Keyer(ABC):
    """Base class for converting function arguments into cache keys."""
    @abstractmethod
    def make_key(self, fn: Callable|None, args: tuple, kwargs: dict) -> str:
        """Convert function arguments into a cache key.

        Args:
            fn: Function being cached, or None
            args: Tuple of positional arguments
            kwargs: Dict of keyword arguments

        Returns:
            A string suitable for use as a cache key (before the cache's prefix is added)
        """
        pass


class StringKeyer(Keyer):
    """Converts function arguments into a stable string key.

    This is the json encoding (with sorted keys) of the function's qualified name, args and kwargs,
    so kwargs order doesn't matter. Everything must be encodable with `CacheJSONEncoder`.
    """
    def make_key(self, fn: Callable|None, args: tuple, kwargs: dict) -> str:
        fn_key = fn.__qualname__ if fn else ''
        return json.dumps([fn_key, list(args), kwargs], sort_keys=True, cls=CacheJSONEncoder, ensure_ascii=False)


class HashStringKeyer(Keyer):
    """Hash keyer that returns fixed-length string digests.

    Uses `StringKeyer` internally to convert args to a string, then applies a hash function.
    """
    def __init__(self, hash_func: str | Callable[[str], str] = 'sha256'):
        """The input `hash_func` should be either:

        - A string naming a `hashlib` algorithm (e.g. 'sha256', 'md5'), in which case we use the
          hexdigest
        - A callable that takes a string and returns a string

        Defaults to 'sha256'.
        """
        self._string_maker = StringKeyer()
        if isinstance(hash_func, str):
            if not hasattr(hashlib, hash_func):
                raise ValueError(f"Hash algorithm '{hash_func}' not found in hashlib")
            self._hash_func = lambda s: getattr(hashlib, hash_func)(s.encode('utf-8')).hexdigest()
        else:
            self._hash_func = hash_func

    def make_key(self, fn: Callable|None, args: tuple, kwargs: dict) -> str:
        string_key = self._string_maker.make_key(fn, args, kwargs)
        return str(self._hash_func(string_key))
