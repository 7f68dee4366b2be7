from unittest import mock

import pytest
from pymongo.errors import ExecutionTimeout

from bookstore_service import aggregations, pipelines
from bookstore_service.config import QUERY_TIMEOUT_MS


def by_id(results):
    return {doc["_id"]: doc for doc in results}


class TestPipelines:

    def test_average_price_pipeline(self):
        assert pipelines.average_price_by_genre_pipeline() == [
            {"$group": {"_id": "$genre", "avgPrice": {"$avg": "$price"}}},
        ]

    def test_top_authors_pipeline(self):
        assert pipelines.top_authors_pipeline(3) == [
            {"$group": {"_id": "$author", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": 3},
        ]

    def test_top_authors_rejects_zero_limit(self):
        with pytest.raises(ValueError):
            pipelines.top_authors_pipeline(0)

    def test_decade_pipeline_groups_on_label(self):
        (stage,) = pipelines.books_by_decade_pipeline()
        assert stage["$group"]["count"] == {"$sum": 1}
        assert stage["$group"]["_id"] == {
            "$concat": [
                {"$toString": {"$subtract": ["$published_year", {"$mod": ["$published_year", 10]}]}},
                "s",
            ],
        }

    def test_builders_return_fresh_lists(self):
        first = pipelines.top_authors_pipeline()
        first.append({"$skip": 1})
        assert len(pipelines.top_authors_pipeline()) == 3


class TestAggregations:

    def test_average_price_by_genre(self, books):
        results = by_id(aggregations.average_price_by_genre(books))
        assert results["Programming"]["avgPrice"] == pytest.approx((37.99 + 49.99 + 42.5) / 3)
        assert results["Memoir"]["avgPrice"] == pytest.approx(9.5)
        assert len(results) == 6

    def test_top_author(self, books):
        assert aggregations.top_authors(books) == [{"_id": "George Orwell", "count": 3}]

    def test_top_authors_limit(self, books):
        results = aggregations.top_authors(books, limit=2)
        assert [doc["_id"] for doc in results] == ["George Orwell", "J.K. Rowling"]
        assert [doc["count"] for doc in results] == [3, 2]

    def test_empty_collection(self, empty_books):
        assert aggregations.average_price_by_genre(empty_books) == []
        assert aggregations.top_authors(empty_books) == []


def test_books_by_decade_sends_pipeline_with_time_limit():
    collection = mock.MagicMock()
    collection.aggregate.return_value = iter([{"_id": "1940s", "count": 2}])

    assert aggregations.books_by_decade(collection) == [{"_id": "1940s", "count": 2}]
    collection.aggregate.assert_called_once_with(
        pipelines.books_by_decade_pipeline(), maxTimeMS=QUERY_TIMEOUT_MS,
    )


def test_aggregation_timeout_becomes_timeout_error():
    collection = mock.MagicMock()
    collection.aggregate.side_effect = ExecutionTimeout("operation exceeded time limit")

    with pytest.raises(TimeoutError):
        aggregations.average_price_by_genre(collection)
