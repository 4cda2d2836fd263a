from flask import current_app
from loguru import logger
from pymongo import GEOSPHERE, MongoClient
from pymongo.database import Database

from .config import MONGO_DB_NAME, MONGO_URI

USERS = "users"
MOVIES = "movies"
CINEMAS = "cinemas"


def connect(uri: str = MONGO_URI, db_name: str = MONGO_DB_NAME):
    """
    Open the shared MongoDB client and select the API database.

    The client is lazy: no connection is made until the first operation.

    Args:
        uri (str): MongoDB connection string.
        db_name (str): Database holding the users, movies and cinemas collections.

    Returns:
        Database: Database handle shared by every request handler.
    """
    client = MongoClient(uri)
    logger.info(f"[DB] Using database '{db_name}'")
    return client[db_name]


def get_db():
    """Return the database handle attached to the running app."""
    return current_app.extensions["mongo_db"]


def users_collection():
    return get_db()[USERS]


def movies_collection():
    return get_db()[MOVIES]


def cinemas_collection():
    return get_db()[CINEMAS]


def ensure_indexes(db: Database):
    """
    Create the indexes the geospatial routes rely on.

    Args:
        db (Database): Database handle.

    Returns:
        str: Name of the geometry index.
    """
    name = db[CINEMAS].create_index([("geometry", GEOSPHERE)])
    logger.info(f"[DB] Index '{name}' ready on {CINEMAS}.geometry")
    return name
