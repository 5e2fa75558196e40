"""pyrbo - Python objects transparently mirrored to Redis."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyrbo")
except PackageNotFoundError:
    __version__ = "0+local"
from pyrbo.backed import RedisBackedObject
from pyrbo.config import RboConfig
from pyrbo.exceptions import (
    RboConfigError,
    RboDecodeError,
    RboEncodeError,
    RboError,
    RboStoreError,
)
from pyrbo.store import KeyValueStore, MemoryStore, RedisStore
from pyrbo.tracking.events import EventEmitter, MutationEvent, MutationKind
from pyrbo.tracking.nodes import TrackedDict, TrackedList, Tracker, is_tracked, to_plain

__all__ = [
    "__version__",
    "EventEmitter",
    "KeyValueStore",
    "MemoryStore",
    "MutationEvent",
    "MutationKind",
    "RboConfig",
    "RboConfigError",
    "RboDecodeError",
    "RboEncodeError",
    "RboError",
    "RboStoreError",
    "RedisBackedObject",
    "RedisStore",
    "TrackedDict",
    "TrackedList",
    "Tracker",
    "is_tracked",
    "to_plain",
]
