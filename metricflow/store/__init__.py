"""Key-value persistence for metric records."""

from .base import KeyValueStore
from .sql import SqlKeyValueStore

__all__ = ["KeyValueStore", "SqlKeyValueStore"]
