"""Read-through caching of expensive loads on top of a pluggable driver and serializer.

    cache = Cacheable(RedisDriver.from_url('redis://localhost'),
                      with_key_prefix('user:'),
                      with_ttl(3600),
                      value_type=User)
    user = cache.load('123', lambda: fetch_user_from_db(123))

On a miss, the compute function is called, its result is serialized and written through the
driver, and the (in-memory) result is returned. On a hit, the stored bytes are deserialized into
`value_type`. Nothing else is ever retried or swallowed, except that with `with_ignore_err()` a
failing driver read falls back to calling the compute function directly, without caching.

Concurrent misses on the same key are not deduplicated: each caller computes and writes, and the
last write wins.
"""

from __future__ import annotations

import functools
import inspect
import logging

from typing import Any, Awaitable, Callable, Generic

from cacheable.config import CacheConfig, Option, resolve_config
from cacheable.constants import CacheNotFound, T
from cacheable.drivers import Driver
from cacheable.keyers import HashStringKeyer, Keyer
from cacheable.serializers import Serializer
from cacheable.stats import CacheStats, StatsCounter

logger = logging.getLogger(__name__)

# sentinels for the outcome of the initial driver read
_MISS = object()
_DRIVER_ERROR = object()


class Cacheable(Generic[T]):
    """Cache-aside helper for values of type `T`.

    Safe to share between threads; the only shared state is the stats counters.
    """
    def __init__(self, driver: Driver, *options: Option, value_type: type[T]|Any = None):
        """Initializes the cache.

        Args:
        - driver: where to store the serialized values
        - options: overrides applied in order on top of the default config (see `cacheable.config`)
        - value_type: type to rebuild when reading cached values (e.g. a dataclass). If None, you get
          back whatever the serializer decodes on its own.
        """
        self.driver = driver
        self.config: CacheConfig = resolve_config(*options)
        self.value_type = value_type
        self._stats = StatsCounter()

    @property
    def serializer(self) -> Serializer:
        return self.config.serializer

    def _full_key(self, key: str) -> str:
        return self.config.key_prefix + key

    def _read(self, full_key: str) -> Any:
        """Fetches raw bytes, mapping a miss to `_MISS` and a tolerated driver failure to `_DRIVER_ERROR`."""
        try:
            return self.driver.get(full_key)
        except CacheNotFound:
            return _MISS
        except Exception as e:
            if not self.config.ignore_err:
                raise
            logger.warning(f'Error reading {full_key!r} from cache, computing directly: {e!r}')
            return _DRIVER_ERROR

    async def _read_async(self, full_key: str) -> Any:
        """Async version of _read()."""
        try:
            return await self.driver.get_async(full_key)
        except CacheNotFound:
            return _MISS
        except Exception as e:
            if not self.config.ignore_err:
                raise
            logger.warning(f'Error reading {full_key!r} from cache, computing directly: {e!r}')
            return _DRIVER_ERROR

    def _decode(self, full_key: str, data: bytes) -> T:
        """Deserializes a hit. Only counted as a hit if that succeeds."""
        value = self.serializer.deserialize(data, self.value_type)
        self._stats.incr('hits')
        logger.debug(f'Cache hit for {full_key!r}')
        return value

    def load(self, key: str, compute_fn: Callable[[], T]) -> T:
        """Returns the cached value for `key`, computing and caching it on a miss.

        Args:
        - key: the key without the prefix (the configured prefix is added here)
        - compute_fn: called with no arguments to produce the value when it's not cached

        Errors from `compute_fn`, the serializer, or the driver's `set()` are raised as-is. On a
        failed write, the computed value is not returned.
        """
        full_key = self._full_key(key)
        data = self._read(full_key)
        if data is _DRIVER_ERROR:
            return compute_fn()
        if data is _MISS:
            self._stats.incr('misses')
            logger.debug(f'Cache miss for {full_key!r}')
            value = compute_fn()
            payload = self.serializer.serialize(value)
            try:
                self.driver.set(full_key, payload, self.config.default_ttl)
            except Exception as e:
                self._stats.incr('set_error')
                logger.warning(f'Error writing {full_key!r} to cache: {e!r}')
                raise
            self._stats.incr('set_success')
            return value
        return self._decode(full_key, data)

    async def load_async(self, key: str, compute_fn: Callable[[], T|Awaitable[T]]) -> T:
        """Async version of load().

        `compute_fn` can be a coroutine function or a regular callable.
        """
        async def compute() -> T:
            value = compute_fn()
            if inspect.isawaitable(value):
                value = await value
            return value

        full_key = self._full_key(key)
        data = await self._read_async(full_key)
        if data is _DRIVER_ERROR:
            return await compute()
        if data is _MISS:
            self._stats.incr('misses')
            logger.debug(f'Cache miss for {full_key!r}')
            value = await compute()
            payload = self.serializer.serialize(value)
            try:
                await self.driver.set_async(full_key, payload, self.config.default_ttl)
            except Exception as e:
                self._stats.incr('set_error')
                logger.warning(f'Error writing {full_key!r} to cache: {e!r}')
                raise
            self._stats.incr('set_success')
            return value
        return self._decode(full_key, data)

    def remove(self, key: str) -> None:
        """Deletes the cached value for `key`.

        Removing a key that isn't cached raises `CacheNotFound` (and counts as a delete error).
        """
        full_key = self._full_key(key)
        try:
            self.driver.delete(full_key)
        except Exception:
            self._stats.incr('del_error')
            raise
        self._stats.incr('del_success')

    async def remove_async(self, key: str) -> None:
        """Async version of remove()."""
        full_key = self._full_key(key)
        try:
            await self.driver.delete_async(full_key)
        except Exception:
            self._stats.incr('del_error')
            raise
        self._stats.incr('del_success')

    def get_stats(self) -> CacheStats:
        """Returns a snapshot of our hit/miss/write counters."""
        return self._stats.snapshot()

    def close(self) -> None:
        """Closes the underlying driver."""
        self.driver.close()

    async def close_async(self) -> None:
        """Async version of close()."""
        await self.driver.close_async()

    def __enter__(self) -> Cacheable[T]:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def as_decorator(self, keyer: Keyer|None = None) -> Callable:
        """Returns a decorator that caches the decorated function's results in this cache.

        The key for each call is made from the function and its arguments by `keyer` (by default a
        `HashStringKeyer`). Coroutine functions are wrapped with `load_async()`.

            @cache.as_decorator()
            def expensive_function(x, y):
                return x + y
        """
        keyer = keyer or HashStringKeyer()

        def decorator(func: Callable) -> Callable:
            if inspect.iscoroutinefunction(func):
                @functools.wraps(func)
                async def async_wrapper(*args, **kwargs):
                    key = keyer.make_key(func, args, kwargs)
                    return await self.load_async(key, lambda: func(*args, **kwargs))
                return async_wrapper

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                key = keyer.make_key(func, args, kwargs)
                return self.load(key, lambda: func(*args, **kwargs))
            return wrapper
        return decorator
