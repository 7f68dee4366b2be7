import mongomock
import pytest

from bookstore_service.seed_data import seed_books


@pytest.fixture
def books():
    """A freshly seeded in-memory books collection."""
    client = mongomock.MongoClient()
    collection = client["plp_bookstore"]["books"]
    seed_books(collection)
    yield collection
    client.close()


@pytest.fixture
def empty_books():
    client = mongomock.MongoClient()
    yield client["plp_bookstore"]["books"]
    client.close()
