"""Shared value types, compute functions and drivers for the tests."""

import threading
import time

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from cacheable.constants import CacheNotFound, DriverError
from cacheable.drivers import Driver, MemoryDriver

class Color(Enum):
    RED = 'red'
    BLUE = 'blue'

@dataclass
class Data:
    Name: str
    Age: int

@dataclass
class Address:
    street: str
    city: str

@dataclass
class Person:
    name: str
    age: int
    address: Address
    tags: list[str] = field(default_factory=list)
    favorite: Color = Color.RED
    previous: list[Address] = field(default_factory=list)
    manager: Optional['Person'] = None
    joined: Optional[datetime] = None

def make_person() -> Person:
    """A person with every kind of nested field filled in."""
    boss = Person(name='Boss', age=50, address=Address('1 Main St', 'Springfield'))
    return Person(
        name='John',
        age=30,
        address=Address('2 Elm St', 'Shelbyville'),
        tags=['a', 'b'],
        favorite=Color.BLUE,
        previous=[Address('3 Oak St', 'Capital City')],
        manager=boss,
        joined=datetime(2020, 1, 2, 3, 4, 5),
    )


class Counter:
    """A compute function that counts how many times it was called."""
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


class AsyncCounter(Counter):
    """Async version of `Counter`."""
    async def __call__(self):
        self.calls += 1
        return self.value


def failing_compute():
    raise ValueError('compute failed')


class RecordingDriver(MemoryDriver):
    """Memory driver that remembers every set() call."""
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.sets: list[tuple[str, bytes, float]] = []

    def set(self, key: str, value: bytes, ttl: float = 0) -> None:
        self.sets.append((key, value, ttl))
        super().set(key, value, ttl)


class FailingDriver(Driver):
    """Driver whose operations fail with a configurable error."""
    def __init__(self, get_error: Exception|None = None, set_error: Exception|None = None):
        self.get_error = get_error
        self.set_error = set_error
        self.set_calls = 0
        self.closed = 0

    def get(self, key: str) -> bytes:
        if self.get_error is not None:
            raise self.get_error
        raise CacheNotFound(key)

    def set(self, key: str, value: bytes, ttl: float = 0) -> None:
        self.set_calls += 1
        if self.set_error is not None:
            raise self.set_error

    def delete(self, key: str) -> None:
        raise DriverError('delete failed')

    def close(self) -> None:
        self.closed += 1


class AlwaysMissDriver(MemoryDriver):
    """Memory driver that never reports a hit, to simulate losing a write race."""
    def get(self, key: str) -> bytes:
        raise CacheNotFound(key)


class FakeRedisClient:
    """In-memory stand-in for the parts of `redis.Redis` the driver uses.

    Like a real server, each command runs atomically.
    """
    def __init__(self):
        self.data: dict[str, tuple[bytes, float|None]] = {}
        self.closed = 0
        self.lock = threading.Lock()

    def _expire(self, key):
        if key in self.data:
            expiry = self.data[key][1]
            if expiry is not None and time.monotonic() >= expiry:
                del self.data[key]

    def get(self, key):
        with self.lock:
            self._expire(key)
            return self.data[key][0] if key in self.data else None

    def set(self, key, value, ex=None, px=None, nx=False):
        with self.lock:
            self._expire(key)
            if nx and key in self.data:
                return None
            expiry = time.monotonic() + px / 1000 if px else None
            self.data[key] = (value, expiry)
            return True

    def delete(self, *keys):
        n = 0
        with self.lock:
            for key in keys:
                self._expire(key)
                if key in self.data:
                    del self.data[key]
                    n += 1
        return n

    def close(self):
        self.closed += 1
