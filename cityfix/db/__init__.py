"""
Database module initialization
"""

from .mongodb import db, close_mongo_connection, connect_to_mongo, get_collection, ping

__all__ = [
    "db",
    "connect_to_mongo",
    "close_mongo_connection",
    "get_collection",
    "ping",
]
