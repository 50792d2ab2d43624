"""
Storage backends for Avenue PD.
"""

from avenuepd.db.base import Store
from avenuepd.db.memory import MemoryStore
from avenuepd.db.mongo import MongoStore, setup_mongodb

__all__ = ["Store", "MemoryStore", "MongoStore", "setup_mongodb"]
