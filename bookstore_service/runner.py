#!/usr/bin/env python3
"""
Bookstore query demo
====================

Usage:
    bookstore-queries [--seed] [mongo_uri] [database] [collection]

Example:
    bookstore-queries --seed "mongodb://localhost:27017" plp_bookstore books

Connects once, runs the fixed sequence of basic queries, advanced queries,
aggregations and index operations against the books collection, and
prints every result. Any failure stops the sequence; the connection is
always closed.
"""

import sys
from typing import List, Optional

from pymongo.collection import Collection

from bookstore_service import aggregations, book_queries, indexing
from bookstore_service.cluster_manager import connect_to_cluster, get_books_collection
from bookstore_service.config import COLLECTION_NAME, DATABASE_NAME, MONGO_URI
from bookstore_service.logger import logger
from bookstore_service.response_formatter import print_result, print_section
from bookstore_service.seed_data import seed_books


def run_basic_queries(books: Collection) -> None:
    print_section("Basic Queries")

    print_result("Programming Books:", book_queries.find_books_by_genre(books, "Programming"))
    print_result("Books published after 2010:", book_queries.find_books_published_after(books, 2010))
    print_result("Books by J.K. Rowling:", book_queries.find_books_by_author(books, "J.K. Rowling"))

    print_result("Update Result:", book_queries.update_book_price(books, "1984", 17.0))
    print_result("Delete Result:", book_queries.delete_book_by_title(books, "The Great Gatsby"))


def run_advanced_queries(books: Collection) -> None:
    print_section("Advanced Queries")

    print_result("In stock & after 2010:", book_queries.find_in_stock_published_after(books, 2010))
    print_result("Projection:", book_queries.find_projected(books))

    print_result("Sorted by Price ASC:", book_queries.sort_books_by_price(books, ascending=True))
    print_result("Sorted by Price DESC:", book_queries.sort_books_by_price(books, ascending=False))

    # 5 books per page
    print_result("Page 1:", book_queries.paginate_books(books, page=1, page_size=5)["data"])
    print_result("Page 2:", book_queries.paginate_books(books, page=2, page_size=5)["data"])


def run_aggregations(books: Collection) -> None:
    print_section("Aggregations")

    print_result("Average Price by Genre:", aggregations.average_price_by_genre(books))
    print_result("Author with most books:", aggregations.top_authors(books, limit=1))
    print_result("Books grouped by decade:", aggregations.books_by_decade(books))


def run_indexing(books: Collection) -> None:
    print_section("Indexing")

    print_result("Created Index:", indexing.create_title_index(books))
    print_result("Created Compound Index:", indexing.create_author_year_index(books))

    execution_stats = indexing.explain_title_query(books, "1984")
    print_result("Explain Result for '1984':", execution_stats)

    summary = indexing.summarize_execution_stats(execution_stats)
    logger.info(
        "Explain for '1984': %s, returned %d, keys examined %d, docs examined %d",
        summary["stages"] or "no stages", summary["nReturned"],
        summary["totalKeysExamined"], summary["totalDocsExamined"],
    )


def run_demo(books: Collection) -> None:
    """Run every demo step in order against ``books``."""
    run_basic_queries(books)
    run_advanced_queries(books)
    run_aggregations(books)
    run_indexing(books)


def parse_args(argv: List[str]):
    """Split ``argv`` into ``(seed, mongo_uri, database, collection)``."""
    seed = "--seed" in argv
    positional = [arg for arg in argv if arg != "--seed"]
    unknown = [arg for arg in positional if arg.startswith("--")]
    if unknown or len(positional) > 3:
        raise SystemExit(__doc__)

    mongo_uri = positional[0] if len(positional) > 0 else MONGO_URI
    database = positional[1] if len(positional) > 1 else DATABASE_NAME
    collection = positional[2] if len(positional) > 2 else COLLECTION_NAME
    return seed, mongo_uri, database, collection


def main(argv: Optional[List[str]] = None) -> int:
    seed, mongo_uri, database, collection = parse_args(
        sys.argv[1:] if argv is None else argv
    )

    client = None
    try:
        client = connect_to_cluster(mongo_uri)
        books = get_books_collection(client, database, collection)

        if seed:
            seed_books(books)

        run_demo(books)
    except Exception as e:
        logger.error("Error: %s", e)
        return 1
    finally:
        if client is not None:
            client.close()
            logger.info("Connection closed")

    return 0


if __name__ == "__main__":
    sys.exit(main())
