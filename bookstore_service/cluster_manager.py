from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from bookstore_service.config import (
    COLLECTION_NAME,
    DATABASE_NAME,
    MONGO_URI,
    SERVER_SELECTION_TIMEOUT_MS,
)
from bookstore_service.logger import logger


def connect_to_cluster(mongo_uri: str = MONGO_URI) -> MongoClient:
    """Create and test a MongoClient connection."""
    client = MongoClient(mongo_uri, serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS)
    try:
        client.admin.command("ping")  # force connection test
    except ServerSelectionTimeoutError:
        client.close()
        raise ConnectionError("Connection timed out. Check your MongoDB URI and network.")
    except ConnectionFailure:
        client.close()
        raise ConnectionError("Failed to connect to MongoDB cluster")

    logger.info("Connected to MongoDB at %s", _redact(mongo_uri))
    return client


def get_books_collection(
    client: MongoClient,
    database_name: str = DATABASE_NAME,
    collection_name: str = COLLECTION_NAME,
) -> Collection:
    return client[database_name][collection_name]


def _redact(mongo_uri: str) -> str:
    """Hide the password part of ``user:password@host`` URIs."""
    scheme, sep, rest = mongo_uri.partition("://")
    if not sep or "@" not in rest:
        return mongo_uri
    credentials, host = rest.rsplit("@", 1)
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"
