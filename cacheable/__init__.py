from .cacheable import Cacheable
from .config import (
    CacheConfig,
    resolve_config,
    with_ignore_err,
    with_key_prefix,
    with_serializer,
    with_ttl,
)
from .constants import (
    CacheNotFound,
    DeserializationError,
    DriverError,
    KeyExists,
    SerializationError,
)
from .drivers import Driver, LocalDriver, MemoryDriver, RedisDriver, SQLDriver
from .keyers import Keyer, StringKeyer, HashStringKeyer
from .serializers import (
    Serializer,
    JsonSerializer,
    MsgpackSerializer,
    PickleSerializer,
    get_serializer,
)
from .stats import CacheStats

__all__ = [
    'Cacheable',
    'CacheConfig',
    'resolve_config',
    'with_ignore_err',
    'with_key_prefix',
    'with_serializer',
    'with_ttl',
    'CacheNotFound',
    'DeserializationError',
    'DriverError',
    'KeyExists',
    'SerializationError',
    'Driver',
    'LocalDriver',
    'MemoryDriver',
    'RedisDriver',
    'SQLDriver',
    'Keyer',
    'StringKeyer',
    'HashStringKeyer',
    'Serializer',
    'JsonSerializer',
    'MsgpackSerializer',
    'PickleSerializer',
    'get_serializer',
    'CacheStats',
]
