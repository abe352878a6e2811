"""
Database Connection

Lazily opens a single MongoDB connection on first use and keeps the
database handle for the lifetime of the process. Configure it with:
- MONGODB_URI: connection string (required)
- DATABASE_NAME: database name (defaults to "art_folio_db")
"""

import logging
import os
import threading
from typing import Optional

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from pymongo.server_api import ServerApi

load_dotenv()

logger = logging.getLogger("ArtFolio.Database")

DEFAULT_DATABASE_NAME = "art_folio_db"

# Collection names
USERS = "arts_users"
ARTWORKS = "arts_collections"

_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


class DatabaseUnavailable(Exception):
    """Raised when no database handle can be produced."""


def _connect() -> Database:
    global _client
    uri = os.getenv("MONGODB_URI")
    if not uri:
        raise DatabaseUnavailable("MONGODB_URI environment variable not set")
    name = os.getenv("DATABASE_NAME", DEFAULT_DATABASE_NAME)

    client = MongoClient(
        uri,
        server_api=ServerApi("1", strict=True, deprecation_errors=True),
        serverSelectionTimeoutMS=5000,
        tz_aware=True,
    )
    try:
        client.admin.command("ping")
    except (ConnectionFailure, ServerSelectionTimeoutError) as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        client.close()
        raise DatabaseUnavailable(str(e)) from e

    _client = client
    logger.info(f"Connected to MongoDB database '{name}' (cached)")
    return client[name]


def get_db() -> Database:
    """Return the cached database handle, connecting on the first call.

    Nothing is cached when the connection fails, so the next call tries
    again.
    """
    global _db
    if _db is not None:
        return _db
    with _lock:
        if _db is None:
            _db = _connect()
    return _db


def reset_db() -> None:
    """Forget the cached handle and close its client."""
    global _client, _db
    with _lock:
        if _client is not None:
            _client.close()
        _client = None
        _db = None
