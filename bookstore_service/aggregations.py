from typing import Any, Dict, List

from pymongo.collection import Collection
from pymongo.errors import ExecutionTimeout

from bookstore_service.config import QUERY_TIMEOUT_MS
from bookstore_service.logger import logger
from bookstore_service.pipelines import (
    Pipeline,
    average_price_by_genre_pipeline,
    books_by_decade_pipeline,
    top_authors_pipeline,
)


def run_pipeline(collection: Collection, pipeline: Pipeline) -> List[Dict[str, Any]]:
    """Run an aggregation with ``maxTimeMS`` and return all result documents."""
    try:
        results = list(collection.aggregate(pipeline, maxTimeMS=QUERY_TIMEOUT_MS))
    except ExecutionTimeout:
        raise TimeoutError("Aggregation timed out after exceeding the time limit.")

    logger.debug("Aggregation with %d stage(s) returned %d documents", len(pipeline), len(results))
    return results


def average_price_by_genre(collection: Collection) -> List[Dict[str, Any]]:
    return run_pipeline(collection, average_price_by_genre_pipeline())


def top_authors(collection: Collection, limit: int = 1) -> List[Dict[str, Any]]:
    return run_pipeline(collection, top_authors_pipeline(limit))


def books_by_decade(collection: Collection) -> List[Dict[str, Any]]:
    return run_pipeline(collection, books_by_decade_pipeline())
