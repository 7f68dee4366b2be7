"""
Book queries: filters, update/delete by title, projection, sorting and
pagination over the ``books`` collection.

Every function takes a pymongo ``Collection`` and hands the work to the
database; results come back as plain lists of documents with ``_id``
converted to strings.
"""

from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import ExecutionTimeout

from bookstore_service.config import QUERY_TIMEOUT_MS
from bookstore_service.logger import logger

# ---------------------- CONSTANTS ----------------------

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 5

SUMMARY_FIELDS = ["title", "author", "price"]


# ---------------------- HELPERS ----------------------

def _stringify_ids(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert ObjectId fields to strings so they are JSON-serialisable."""
    for doc in docs:
        if "_id" in doc:
            doc["_id"] = str(doc["_id"])
    return docs


def _build_projection(fields: Optional[List[str]], include_id: bool = False) -> Optional[Dict[str, int]]:
    """Convert a list of field names into a MongoDB projection dict."""
    if not fields:
        return None
    projection = {f: 1 for f in fields}
    if not include_id:
        projection["_id"] = 0
    return projection


def _run_find(collection: Collection, mongo_filter: Dict[str, Any], projection=None, sort=None,
              skip: int = 0, limit: int = 0) -> List[Dict[str, Any]]:
    cursor = collection.find(mongo_filter, projection).max_time_ms(QUERY_TIMEOUT_MS)
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)

    try:
        results = list(cursor)
    except ExecutionTimeout:
        raise TimeoutError("Query timed out after exceeding the time limit.")

    logger.debug("find %s returned %d documents", mongo_filter, len(results))
    return _stringify_ids(results)


def build_book_filter(
    genre: Optional[str] = None,
    author: Optional[str] = None,
    published_after: Optional[int] = None,
    in_stock: Optional[bool] = None,
    title: Optional[str] = None,
) -> Dict[str, Any]:
    """Combine the given criteria into one filter document.

    Criteria left as ``None`` are not part of the filter, so calling with
    no arguments matches every book.
    """
    mongo_filter: Dict[str, Any] = {}
    if title is not None:
        mongo_filter["title"] = title
    if genre is not None:
        mongo_filter["genre"] = genre
    if author is not None:
        mongo_filter["author"] = author
    if in_stock is not None:
        mongo_filter["in_stock"] = in_stock
    if published_after is not None:
        mongo_filter["published_year"] = {"$gt": published_after}
    return mongo_filter


# ---------------------- BASIC QUERIES ----------------------

def find_books(collection: Collection, **criteria) -> List[Dict[str, Any]]:
    """Find books matching ``criteria`` (see ``build_book_filter``)."""
    return _run_find(collection, build_book_filter(**criteria))


def find_books_by_genre(collection: Collection, genre: str) -> List[Dict[str, Any]]:
    return find_books(collection, genre=genre)


def find_books_published_after(collection: Collection, year: int) -> List[Dict[str, Any]]:
    return find_books(collection, published_after=year)


def find_books_by_author(collection: Collection, author: str) -> List[Dict[str, Any]]:
    return find_books(collection, author=author)


def update_book_price(collection: Collection, title: str, price: float) -> int:
    """Set the price of the first book titled ``title``.

    Returns the modified count, which is 0 when no book matches or the
    price is already ``price``.
    """
    result = collection.update_one({"title": title}, {"$set": {"price": price}})
    logger.info(
        "Price update for %r: matched=%d modified=%d",
        title, result.matched_count, result.modified_count,
    )
    return result.modified_count


def delete_book_by_title(collection: Collection, title: str) -> int:
    """Delete one book by title and return the deleted count."""
    result = collection.delete_one({"title": title})
    logger.info("Delete of %r removed %d document(s)", title, result.deleted_count)
    return result.deleted_count


# ---------------------- ADVANCED QUERIES ----------------------

def find_in_stock_published_after(collection: Collection, year: int) -> List[Dict[str, Any]]:
    return find_books(collection, in_stock=True, published_after=year)


def find_projected(collection: Collection, fields: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """Return every book reduced to ``fields`` (title, author, price by default), without ``_id``."""
    projection = _build_projection(fields or SUMMARY_FIELDS)
    return _run_find(collection, {}, projection)


def sort_books_by_price(collection: Collection, ascending: bool = True) -> List[Dict[str, Any]]:
    direction = ASCENDING if ascending else DESCENDING
    return _run_find(collection, {}, sort=[("price", direction)])


def paginate_books(
    collection: Collection,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    mongo_filter: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Return one page of books.

    Returns a dict with:
    - ``data``: list of documents for the current page
    - ``total_count``: total matching documents
    - ``page``: current page number
    - ``page_size``: effective page size
    """

    # enforce hard caps
    page = max(1, page)
    page_size = min(max(1, page_size), MAX_PAGE_SIZE)
    skip = (page - 1) * page_size
    mongo_filter = mongo_filter or {}

    try:
        total_count = collection.count_documents(mongo_filter, maxTimeMS=QUERY_TIMEOUT_MS)
    except ExecutionTimeout:
        raise TimeoutError("Query timed out after exceeding the time limit.")

    data = _run_find(collection, mongo_filter, skip=skip, limit=page_size)

    return {
        "data": data,
        "total_count": total_count,
        "page": page,
        "page_size": page_size,
    }
