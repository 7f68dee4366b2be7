"""
FastAPI bookstore service — the demo queries exposed over HTTP.

Features:
- Filtered book listing (genre, author, year, stock)
- Projection, price sorting and capped pagination
- Price update and delete by title
- Aggregation stats (average price, top authors, decades)
- Index creation/inspection and query-plan explanation

Serve with:
    uvicorn bookstore_service.app:app --reload
"""

import threading
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from bookstore_service import aggregations, book_queries, indexing
from bookstore_service.book_queries import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from bookstore_service.cluster_manager import connect_to_cluster, get_books_collection
from bookstore_service.logger import logger
from bookstore_service.response_formatter import clean_documents

_state: Dict[str, Any] = {"client": None}
_connect_lock = threading.Lock()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    client = _state["client"]
    if client is not None:
        client.close()
        _state["client"] = None
        logger.info("Connection closed")


app = FastAPI(title="Bookstore Query Service", version="1.0.0", lifespan=lifespan)


def get_collection() -> Iterator[Collection]:
    """Yield the configured books collection, connecting on first use.

    Sync dependencies run in a threadpool; the lock keeps concurrent first
    requests on a single client.
    """
    with _connect_lock:
        if _state["client"] is None:
            try:
                _state["client"] = connect_to_cluster()
            except ConnectionError as e:
                logger.error("connect error: %s", e)
                raise HTTPException(status_code=503, detail=str(e))
    yield get_books_collection(_state["client"])


# ---------------------- REQUEST MODELS ----------------------


class PriceUpdate(BaseModel):
    price: float = Field(gt=0, description="New price for the book")


class ExplainRequest(BaseModel):
    title: str
    verbosity: str = Field(default="executionStats", pattern="^(queryPlanner|executionStats|allPlansExecution)$")


# ---------------------- HELPERS ----------------------


def _database_call(name: str, fn, *args, **kwargs):
    """Run ``fn`` and map database failures to HTTP errors."""
    try:
        return fn(*args, **kwargs)
    except TimeoutError as e:
        logger.warning("%s timed out: %s", name, e)
        raise HTTPException(status_code=504, detail=str(e))
    except PyMongoError as e:
        logger.error("%s error: %s", name, e)
        raise HTTPException(status_code=500, detail=f"Database error: {e}")


# ---------------------- ENDPOINTS ----------------------


@app.get("/health")
def health_check():
    return {"status": "ok", "version": "1.0.0"}


@app.get("/books")
def list_books(
    genre: Optional[str] = None,
    author: Optional[str] = None,
    published_after: Optional[int] = None,
    in_stock: Optional[bool] = None,
    books: Collection = Depends(get_collection),
):
    data = _database_call(
        "list-books", book_queries.find_books, books,
        genre=genre, author=author, published_after=published_after, in_stock=in_stock,
    )
    return {"result_count": len(data), "data": clean_documents(data)}


@app.get("/books/projection")
def list_book_summaries(books: Collection = Depends(get_collection)):
    data = _database_call("projection", book_queries.find_projected, books)
    return {"result_count": len(data), "data": clean_documents(data)}


@app.get("/books/sorted")
def list_books_by_price(
    direction: str = Query(default="asc", pattern="^(asc|desc)$"),
    books: Collection = Depends(get_collection),
):
    data = _database_call(
        "sorted", book_queries.sort_books_by_price, books, ascending=direction == "asc",
    )
    return {"direction": direction, "result_count": len(data), "data": clean_documents(data)}


@app.get("/books/page")
def list_books_page(
    page: int = Query(default=1, ge=1, description="Page number (1-based)"),
    page_size: int = Query(
        default=DEFAULT_PAGE_SIZE,
        ge=1,
        le=MAX_PAGE_SIZE,
        description=f"Results per page (max {MAX_PAGE_SIZE})",
    ),
    books: Collection = Depends(get_collection),
):
    result = _database_call("page", book_queries.paginate_books, books, page=page, page_size=page_size)
    result["data"] = clean_documents(result["data"])
    return result


@app.patch("/books/{title}/price")
def update_price(title: str, request: PriceUpdate, books: Collection = Depends(get_collection)):
    if _database_call("find-book", books.find_one, {"title": title}, {"_id": 1}) is None:
        raise HTTPException(status_code=404, detail=f"Book not found: {title}")
    modified = _database_call("update-price", book_queries.update_book_price, books, title, request.price)
    return {"title": title, "price": request.price, "modified_count": modified}


@app.delete("/books/{title}")
def delete_book(title: str, books: Collection = Depends(get_collection)):
    deleted = _database_call("delete", book_queries.delete_book_by_title, books, title)
    if deleted == 0:
        raise HTTPException(status_code=404, detail=f"Book not found: {title}")
    return {"title": title, "deleted_count": deleted}


@app.get("/stats/average-price-by-genre")
def stats_average_price(books: Collection = Depends(get_collection)):
    return {"data": clean_documents(_database_call("avg-price", aggregations.average_price_by_genre, books))}


@app.get("/stats/top-authors")
def stats_top_authors(
    limit: int = Query(default=1, ge=1, le=MAX_PAGE_SIZE),
    books: Collection = Depends(get_collection),
):
    return {"data": clean_documents(_database_call("top-authors", aggregations.top_authors, books, limit))}


@app.get("/stats/by-decade")
def stats_by_decade(books: Collection = Depends(get_collection)):
    return {"data": clean_documents(_database_call("by-decade", aggregations.books_by_decade, books))}


@app.get("/indexes")
def get_indexes(books: Collection = Depends(get_collection)):
    """Return index information for the collection."""
    indexes = _database_call("get-indexes", indexing.list_indexes, books)
    return {
        "indexes": indexes,
        "indexed_fields": sorted(indexing.get_indexed_fields(indexes)),
    }


@app.post("/indexes")
def create_indexes(books: Collection = Depends(get_collection)):
    """Create the title index and the author + published_year compound index."""
    created = [
        _database_call("create-index", indexing.create_title_index, books),
        _database_call("create-index", indexing.create_author_year_index, books),
    ]
    return {"created": created}


@app.post("/explain")
def explain(request: ExplainRequest, books: Collection = Depends(get_collection)):
    """Explain a lookup by title and summarise how the server ran it."""
    explain_output = _database_call(
        "explain", indexing.explain_find, books, {"title": request.title}, request.verbosity,
    )
    execution_stats = explain_output.get("executionStats", {})
    return {
        "winning_plan": indexing.winning_plan_stages(explain_output),
        "summary": indexing.summarize_execution_stats(execution_stats) if execution_stats else None,
        "execution_stats": clean_documents([execution_stats])[0],
    }
