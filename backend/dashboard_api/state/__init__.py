from .environment_store import EnvironmentStore, JsonFileStorage, MemoryStorage

__all__ = ["EnvironmentStore", "JsonFileStorage", "MemoryStorage"]
