"""Configuration for a `Cacheable`: defaults plus an ordered list of override functions.

    cache = Cacheable(driver, with_key_prefix('user:'), with_ttl(timedelta(hours=1)))

Each option takes the config built so far and returns a new one, so later options win.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Callable

from cacheable.serializers import JsonSerializer, Serializer, get_serializer


@dataclass(frozen=True)
class CacheConfig:
    """Resolved settings, fixed once the cache is constructed.

    - serializer: codec used for every value
    - key_prefix: prepended to every caller key, as-is (no separator is added)
    - default_ttl: seconds passed to every driver `set()`; 0 means no expiry
    - ignore_err: if True, driver read errors (other than a miss) fall back to calling the compute
      function directly instead of raising
    """
    serializer: Serializer = field(default_factory=JsonSerializer)
    key_prefix: str = ''
    default_ttl: float = 0.0
    ignore_err: bool = False


Option = Callable[[CacheConfig], CacheConfig]


def with_serializer(serializer: Serializer | str) -> Option:
    """Use the given serializer, either an instance or a name like 'msgpack'."""
    if isinstance(serializer, str):
        serializer = get_serializer(serializer)
    return lambda cfg: replace(cfg, serializer=serializer)

def with_key_prefix(key_prefix: str) -> Option:
    """Prefix every key with `key_prefix`."""
    return lambda cfg: replace(cfg, key_prefix=key_prefix)

def with_ttl(ttl: float | timedelta) -> Option:
    """Expire entries after `ttl` (seconds or a timedelta). 0 means never."""
    if isinstance(ttl, timedelta):
        ttl = ttl.total_seconds()
    if ttl < 0:
        raise ValueError(f'TTL must be non-negative, got {ttl}')
    return lambda cfg: replace(cfg, default_ttl=float(ttl))

def with_ignore_err(ignore_err: bool = True) -> Option:
    """Whether to compute directly (without caching) when the driver fails on read."""
    return lambda cfg: replace(cfg, ignore_err=ignore_err)


def resolve_config(*options: Option) -> CacheConfig:
    """Applies `options` in order on top of the defaults."""
    cfg = CacheConfig()
    for opt in options:
        cfg = opt(cfg)
    return cfg
