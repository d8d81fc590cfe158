"""Local warranty record stores."""

from services.warranty.store.base import WarrantyStore
from services.warranty.store.memory import InMemoryWarrantyStore
from services.warranty.store.sql import SqlWarrantyStore

__all__ = [
    "WarrantyStore",
    "InMemoryWarrantyStore",
    "SqlWarrantyStore",
]
