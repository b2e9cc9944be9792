"""Serializers: turning cached values into bytes and back.

Every serializer works on bytes, so drivers never need to know what is being cached. The JSON and
msgpack serializers go through a plain "builtin" form (dicts, lists, strings, numbers), which means
that to get a dataclass back out you have to tell `deserialize()` which type you want. Nested
dataclasses, lists/dicts of dataclasses, enums and datetimes are all handled, driven by the type
hints on the dataclass.

The pickle serializer round-trips anything picklable without any type information, but only use
it with a backend you trust, since unpickling can run arbitrary code.
"""

from __future__ import annotations

import dataclasses
import json
import pickle
import types
import typing

from abc import ABC, abstractmethod
from datetime import date, datetime
from enum import Enum
from typing import Any, Union

import msgpack

from cacheable.constants import DeserializationError, SerializationError


def to_builtins(obj: Any) -> Any:
    """Recursively converts `obj` into plain json/msgpack-able structures.

    - dataclasses: dict of their fields
    - lists/tuples: lists
    - sets: sorted lists (or unsorted, if the items can't be compared)
    - Enum: its value
    - datetime/date: isoformat string
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_builtins(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return to_builtins(obj.value)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {to_builtins(k): to_builtins(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_builtins(x) for x in obj]
    if isinstance(obj, (set, frozenset)):
        items = [to_builtins(x) for x in obj]
        try:
            return sorted(items)
        except TypeError:
            return items
    return obj


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except NameError:
        # forward refs we can't resolve (e.g. classes defined inside functions)
        return {}


def from_builtins(value_type: Any, data: Any) -> Any:
    """Rebuilds a value of `value_type` from the output of `to_builtins()`.

    If `value_type` is None (or Any), the data is returned as-is. Scalars are not validated; we only
    reconstruct containers, dataclasses, enums and dates.
    """
    if value_type is None or value_type is Any or data is None:
        return data
    origin = typing.get_origin(value_type)
    args = typing.get_args(value_type)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1:
            return from_builtins(members[0], data)
        for member in members:
            # pick the first dataclass member that matches a dict, otherwise leave it alone
            if isinstance(data, dict) and dataclasses.is_dataclass(member):
                return from_builtins(member, data)
        return data
    if origin in (list, set, frozenset, tuple) and not isinstance(data, (list, tuple)):
        raise TypeError(f'Expected a list to build {value_type}, got {type(data).__name__}')
    if origin is dict and not isinstance(data, dict):
        raise TypeError(f'Expected a dict to build {value_type}, got {type(data).__name__}')
    if origin in (list, set, frozenset):
        item_type = args[0] if args else None
        return origin(from_builtins(item_type, x) for x in data)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(from_builtins(args[0], x) for x in data)
        if args:
            return tuple(from_builtins(arg, x) for arg, x in zip(args, data))
        return tuple(data)
    if origin is dict:
        key_type, item_type = args if args else (None, None)
        return {from_builtins(key_type, k): from_builtins(item_type, v) for k, v in data.items()}
    if not isinstance(value_type, type):
        return data
    if dataclasses.is_dataclass(value_type):
        if not isinstance(data, dict):
            raise TypeError(f'Expected a dict to build {value_type.__name__}, got {type(data).__name__}')
        hints = _type_hints(value_type)
        kwargs = {
            f.name: from_builtins(hints.get(f.name), data[f.name])
            for f in dataclasses.fields(value_type)
            if f.init and f.name in data
        }
        return value_type(**kwargs)
    if issubclass(value_type, Enum):
        return value_type(data)
    if issubclass(value_type, (datetime, date)) and isinstance(data, str):
        return value_type.fromisoformat(data)
    if value_type in (list, tuple, set, frozenset) and isinstance(data, list):
        return value_type(data)
    return data


class CacheJSONEncoder(json.JSONEncoder):
    """A JSON encoder that can handle the non-json-able types we commonly cache.

    Currently:
    - dataclasses: converts to dict of fields (recursively)
    - datetime/date: isoformat
    - set: converts to a sorted list
    - Enum: converts to its value
    """
    def default(self, obj):
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return to_builtins(obj)
        if isinstance(obj, (datetime, date, set, frozenset, Enum)):
            return to_builtins(obj)
        return super().default(obj)


class Serializer(ABC):
    """Base class for serialization formats."""
    name: str = ''

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Serialize value to bytes.

        Raises `SerializationError` if the value can't be encoded.
        """
        pass

    @abstractmethod
    def deserialize(self, data: bytes, value_type: Any = None) -> Any:
        """Deserialize bytes to a value, rebuilding `value_type` if given.

        Raises `DeserializationError` if the bytes can't be decoded.
        """
        pass

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}()'


class JsonSerializer(Serializer):
    """JSON serialization format (the default)."""
    name = 'json'

    def __init__(self, EncoderCls=CacheJSONEncoder, DecoderCls=json.JSONDecoder, indent=None):
        self.EncoderCls = EncoderCls
        self.DecoderCls = DecoderCls
        self.indent = indent

    def serialize(self, value: Any) -> bytes:
        try:
            return json.dumps(value, cls=self.EncoderCls, ensure_ascii=False, indent=self.indent).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise SerializationError(f'Could not encode {type(value).__name__} as json: {e}') from e

    def deserialize(self, data: bytes, value_type: Any = None) -> Any:
        try:
            obj = json.loads(data.decode('utf-8'), cls=self.DecoderCls)
            return from_builtins(value_type, obj)
        except (TypeError, ValueError, KeyError) as e:
            raise DeserializationError(f'Could not decode json payload: {e}') from e


class MsgpackSerializer(Serializer):
    """Compact binary serialization using msgpack."""
    name = 'msgpack'

    def serialize(self, value: Any) -> bytes:
        try:
            return msgpack.packb(to_builtins(value), use_bin_type=True)
        except (TypeError, ValueError, OverflowError) as e:
            raise SerializationError(f'Could not encode {type(value).__name__} as msgpack: {e}') from e

    def deserialize(self, data: bytes, value_type: Any = None) -> Any:
        try:
            obj = msgpack.unpackb(data, raw=False, strict_map_key=False)
            return from_builtins(value_type, obj)
        except (TypeError, ValueError, KeyError, msgpack.exceptions.UnpackException) as e:
            raise DeserializationError(f'Could not decode msgpack payload: {e}') from e


class PickleSerializer(Serializer):
    """Schema-less binary serialization using pickle.

    No `value_type` is needed to get the original objects back.
    """
    name = 'pickle'

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    def serialize(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f'Could not pickle {type(value).__name__}: {e}') from e

    def deserialize(self, data: bytes, value_type: Any = None) -> Any:
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, ValueError, TypeError, AttributeError, ImportError, IndexError) as e:
            raise DeserializationError(f'Could not unpickle payload: {e}') from e


SERIALIZERS: dict[str, type[Serializer]] = {
    cls.name: cls for cls in (JsonSerializer, MsgpackSerializer, PickleSerializer)
}

def get_serializer(name: str) -> Serializer:
    """Returns a new serializer instance by name ('json', 'msgpack' or 'pickle')."""
    try:
        return SERIALIZERS[name]()
    except KeyError:
        raise ValueError(f"Unknown serializer '{name}', must be one of {sorted(SERIALIZERS)}")
