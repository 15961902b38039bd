"""
Local key-value storage
"""

from .kv_store import KeyValueStore, InMemoryKeyValueStore, JsonFileKeyValueStore

__all__ = ["KeyValueStore", "InMemoryKeyValueStore", "JsonFileKeyValueStore"]
