"""Database engine, declarative base and session dependency."""

from db.base import Base
from db.session import close_db, get_db, get_engine, init_db

__all__ = ["Base", "get_db", "get_engine", "init_db", "close_db"]
