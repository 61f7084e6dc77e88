"""
Database module - PostgreSQL (relational data) and MongoDB (uploaded files).
"""
from espacestage.db.postgres import Database, get_db
from espacestage.db.mongodb import FileStore, GridFSFileStore, get_file_store

__all__ = [
    "Database",
    "get_db",
    "FileStore",
    "GridFSFileStore",
    "get_file_store",
]
