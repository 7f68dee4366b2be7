"""
Aggregation pipeline builders.

Each builder returns a fresh list of stage documents; evaluation is left
entirely to the database (see ``aggregations.py``).
"""

from typing import Any, Dict, List

Pipeline = List[Dict[str, Any]]


def average_price_by_genre_pipeline() -> Pipeline:
    return [
        {"$group": {"_id": "$genre", "avgPrice": {"$avg": "$price"}}},
    ]


def top_authors_pipeline(limit: int = 1) -> Pipeline:
    """Authors ordered by number of books, most prolific first."""
    if limit < 1:
        raise ValueError("limit must be at least 1")
    return [
        {"$group": {"_id": "$author", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
        {"$limit": limit},
    ]


def decade_label_expression(year_field: str = "$published_year") -> Dict[str, Any]:
    """Expression turning a year into its decade label, e.g. 1949 -> "1940s"."""
    return {
        "$concat": [
            {
                "$toString": {
                    "$subtract": [year_field, {"$mod": [year_field, 10]}],
                },
            },
            "s",
        ],
    }


def books_by_decade_pipeline() -> Pipeline:
    return [
        {
            "$group": {
                "_id": decade_label_expression(),
                "count": {"$sum": 1},
            },
        },
    ]
