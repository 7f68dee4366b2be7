"""
Sample ``books`` documents used to seed a fresh collection before running
the demo queries.
"""

import copy
from typing import Any, Dict, List

from pymongo.collection import Collection

from bookstore_service.logger import logger

SAMPLE_BOOKS: List[Dict[str, Any]] = [
    {"title": "To Kill a Mockingbird", "author": "Harper Lee", "genre": "Fiction",
     "published_year": 1960, "price": 12.99, "in_stock": True, "pages": 336,
     "publisher": "J. B. Lippincott & Co."},
    {"title": "1984", "author": "George Orwell", "genre": "Dystopian",
     "published_year": 1949, "price": 10.99, "in_stock": True, "pages": 328,
     "publisher": "Secker & Warburg"},
    {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "genre": "Fiction",
     "published_year": 1925, "price": 9.99, "in_stock": True, "pages": 180,
     "publisher": "Charles Scribner's Sons"},
    {"title": "Brave New World", "author": "Aldous Huxley", "genre": "Dystopian",
     "published_year": 1932, "price": 11.5, "in_stock": False, "pages": 311,
     "publisher": "Chatto & Windus"},
    {"title": "The Hobbit", "author": "J.R.R. Tolkien", "genre": "Fantasy",
     "published_year": 1937, "price": 14.99, "in_stock": True, "pages": 310,
     "publisher": "George Allen & Unwin"},
    {"title": "Animal Farm", "author": "George Orwell", "genre": "Political Satire",
     "published_year": 1945, "price": 8.5, "in_stock": False, "pages": 112,
     "publisher": "Secker & Warburg"},
    {"title": "Harry Potter and the Philosopher's Stone", "author": "J.K. Rowling",
     "genre": "Fantasy", "published_year": 1997, "price": 15.99, "in_stock": True,
     "pages": 223, "publisher": "Bloomsbury"},
    {"title": "The Casual Vacancy", "author": "J.K. Rowling", "genre": "Fiction",
     "published_year": 2012, "price": 13.5, "in_stock": False, "pages": 503,
     "publisher": "Little, Brown"},
    {"title": "Clean Code", "author": "Robert C. Martin", "genre": "Programming",
     "published_year": 2008, "price": 37.99, "in_stock": True, "pages": 464,
     "publisher": "Prentice Hall"},
    {"title": "Fluent Python", "author": "Luciano Ramalho", "genre": "Programming",
     "published_year": 2015, "price": 49.99, "in_stock": True, "pages": 792,
     "publisher": "O'Reilly Media"},
    {"title": "Designing Data-Intensive Applications", "author": "Martin Kleppmann",
     "genre": "Programming", "published_year": 2017, "price": 42.5, "in_stock": False,
     "pages": 616, "publisher": "O'Reilly Media"},
    {"title": "The Alchemist", "author": "Paulo Coelho", "genre": "Fiction",
     "published_year": 1988, "price": 10.5, "in_stock": True, "pages": 197,
     "publisher": "HarperTorch"},
    {"title": "Down and Out in Paris and London", "author": "George Orwell", "genre": "Memoir",
     "published_year": 1933, "price": 9.5, "in_stock": True, "pages": 232,
     "publisher": "Victor Gollancz"},
]


def sample_books() -> List[Dict[str, Any]]:
    """Return a deep copy so inserts never mutate the module-level data."""
    return copy.deepcopy(SAMPLE_BOOKS)


def seed_books(collection: Collection, drop: bool = True) -> int:
    """Insert the sample books, optionally dropping the collection first.

    Returns the number of inserted documents.
    """
    if drop:
        collection.drop()
        logger.info("Dropped collection %s", collection.name)

    result = collection.insert_many(sample_books())
    logger.info("Seeded %d books into %s", len(result.inserted_ids), collection.name)
    return len(result.inserted_ids)
