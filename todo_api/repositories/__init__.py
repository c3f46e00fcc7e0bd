"""Repository implementations."""

from .memory import InMemoryTaskStore, InMemoryUserDirectory
from .mongo import MongoConnection, MongoTaskStore, MongoUserDirectory

__all__ = [
    "InMemoryTaskStore",
    "InMemoryUserDirectory",
    "MongoConnection",
    "MongoTaskStore",
    "MongoUserDirectory",
]
