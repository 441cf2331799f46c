from .base import Base, load_models
from .session import (
    ENGINE as engine,
    SessionLocal,
    get_db,
    get_engine,
    get_sessionmaker,
    init_db,
)

__all__ = [
    "Base",
    "load_models",
    "engine",
    "SessionLocal",
    "get_db",
    "get_engine",
    "get_sessionmaker",
    "init_db",
]
