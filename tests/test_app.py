import threading
import time
from unittest import mock

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure

from bookstore_service import aggregations, indexing
from bookstore_service import app as app_module
from bookstore_service.app import app, get_collection

from .test_indexing import EXPLAIN_OUTPUT


@pytest.fixture
def client(books):
    app.dependency_overrides[get_collection] = lambda: books
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "version": "1.0.0"}


class TestBooks:

    def test_filter_by_genre(self, client):
        body = client.get("/books", params={"genre": "Programming"}).json()
        assert body["result_count"] == 3
        assert all(isinstance(doc["_id"], str) for doc in body["data"])

    def test_combined_filters(self, client):
        body = client.get("/books", params={"in_stock": "true", "published_after": 2010}).json()
        assert [doc["title"] for doc in body["data"]] == ["Fluent Python"]

    def test_projection(self, client):
        body = client.get("/books/projection").json()
        assert set(body["data"][0]) == {"title", "author", "price"}

    def test_sorted_descending(self, client):
        body = client.get("/books/sorted", params={"direction": "desc"}).json()
        assert body["data"][0]["title"] == "Fluent Python"

    def test_sorted_rejects_bad_direction(self, client):
        assert client.get("/books/sorted", params={"direction": "sideways"}).status_code == 422

    def test_page(self, client):
        body = client.get("/books/page", params={"page": 2, "page_size": 5}).json()
        assert body["page"] == 2
        assert body["total_count"] == 13
        assert len(body["data"]) == 5

    def test_page_size_cap(self, client):
        assert client.get("/books/page", params={"page_size": 101}).status_code == 422


class TestWrites:

    def test_update_price(self, client, books):
        response = client.patch("/books/1984/price", json={"price": 17.0})
        assert response.json() == {"title": "1984", "price": 17.0, "modified_count": 1}
        assert books.find_one({"title": "1984"})["price"] == 17.0

    def test_update_missing_book(self, client):
        assert client.patch("/books/Missing/price", json={"price": 5}).status_code == 404

    def test_update_rejects_negative_price(self, client):
        assert client.patch("/books/1984/price", json={"price": -1}).status_code == 422

    def test_delete(self, client):
        assert client.delete("/books/The Great Gatsby").json()["deleted_count"] == 1
        assert client.delete("/books/The Great Gatsby").status_code == 404


class TestStats:

    def test_average_price_by_genre(self, client):
        data = client.get("/stats/average-price-by-genre").json()["data"]
        assert {doc["_id"] for doc in data} >= {"Programming", "Fiction", "Memoir"}

    def test_top_authors(self, client):
        data = client.get("/stats/top-authors", params={"limit": 2}).json()["data"]
        assert data == [{"_id": "George Orwell", "count": 3}, {"_id": "J.K. Rowling", "count": 2}]


class TestIndexes:

    def test_create_and_list(self, client):
        assert client.post("/indexes").json() == {"created": ["title_1", "author_1_published_year_1"]}

        body = client.get("/indexes").json()
        assert {idx["name"] for idx in body["indexes"]} == {"_id_", "title_1", "author_1_published_year_1"}
        assert body["indexed_fields"] == ["_id", "author", "published_year", "title"]

    def test_explain(self, client):
        with mock.patch.object(indexing, "explain_find", return_value=EXPLAIN_OUTPUT):
            body = client.post("/explain", json={"title": "1984"}).json()

        assert body["winning_plan"] == ["FETCH", "IXSCAN"]
        assert body["summary"]["used_index"] is True
        assert body["execution_stats"]["nReturned"] == 1

    def test_explain_rejects_unknown_verbosity(self, client):
        assert client.post("/explain", json={"title": "1984", "verbosity": "all"}).status_code == 422


class TestErrors:

    def test_database_error_is_500(self, client):
        with mock.patch.object(indexing, "list_indexes", side_effect=OperationFailure("not authorized")):
            response = client.get("/indexes")
        assert response.status_code == 500
        assert "not authorized" in response.json()["detail"]

    def test_timeout_is_504(self, client):
        with mock.patch.object(indexing, "list_indexes", side_effect=TimeoutError("slow")):
            assert client.get("/indexes").status_code == 504

    def test_connection_failure_is_503(self, books):
        with mock.patch("bookstore_service.app.connect_to_cluster", side_effect=ConnectionError("down")):
            response = TestClient(app).get("/books")
        assert response.status_code == 503


class TestConnection:

    @pytest.fixture(autouse=True)
    def reset_client(self):
        app_module._state["client"] = None
        yield
        app_module._state["client"] = None

    def test_concurrent_first_requests_share_one_client(self):
        created = []

        def slow_connect():
            time.sleep(0.1)
            client = mock.MagicMock()
            created.append(client)
            return client

        def resolve():
            collections.append(next(get_collection()))

        collections = []
        with mock.patch.object(app_module, "connect_to_cluster", side_effect=slow_connect):
            threads = [threading.Thread(target=resolve) for _ in range(4)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert len(created) == 1
        assert app_module._state["client"] is created[0]
        assert len(collections) == 4

    def test_failed_connect_is_retried_on_next_request(self):
        client = mock.MagicMock()
        with mock.patch.object(app_module, "connect_to_cluster", side_effect=[ConnectionError("down"), client]):
            with pytest.raises(HTTPException):
                next(get_collection())
            next(get_collection())

        assert app_module._state["client"] is client


def test_by_decade(client):
    with mock.patch.object(aggregations, "books_by_decade", return_value=[{"_id": "1940s", "count": 3}]):
        body = client.get("/stats/by-decade").json()
    assert body == {"data": [{"_id": "1940s", "count": 3}]}


def test_aggregation_timeout_is_504(client):
    with mock.patch.object(aggregations, "books_by_decade", side_effect=TimeoutError("slow")):
        response = client.get("/stats/by-decade")
    assert response.status_code == 504
    assert response.json()["detail"] == "slow"
