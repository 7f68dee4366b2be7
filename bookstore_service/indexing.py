"""
Index management and query-plan inspection for the ``books`` collection.
"""

from typing import Any, Dict, List, Optional, Set

from pymongo import ASCENDING
from pymongo.collection import Collection

from bookstore_service.config import QUERY_TIMEOUT_MS
from bookstore_service.logger import logger

TITLE_INDEX = [("title", ASCENDING)]
AUTHOR_YEAR_INDEX = [("author", ASCENDING), ("published_year", ASCENDING)]

EXPLAIN_VERBOSITIES = ("queryPlanner", "executionStats", "allPlansExecution")


# ---------------------- INDEX CREATION ----------------------

def create_title_index(collection: Collection) -> str:
    """Create (or reuse) the ascending index on ``title``; returns its name."""
    name = collection.create_index(TITLE_INDEX)
    logger.info("Index ready on %s: %s", collection.name, name)
    return name


def create_author_year_index(collection: Collection) -> str:
    """Create (or reuse) the compound ``author`` + ``published_year`` index."""
    name = collection.create_index(AUTHOR_YEAR_INDEX)
    logger.info("Compound index ready on %s: %s", collection.name, name)
    return name


# ---------------------- INDEX INSPECTION ----------------------

def list_indexes(collection: Collection) -> List[Dict[str, Any]]:
    """Return a list of index descriptions for the collection.

    Each entry contains:
    - ``name``: index name
    - ``keys``: list of ``(field, direction)`` pairs
    - ``unique``: whether the index enforces uniqueness
    """
    indexes: List[Dict[str, Any]] = []
    for name, info in collection.index_information().items():
        indexes.append({
            "name": name,
            "keys": [list(pair) for pair in info.get("key", [])],
            "unique": info.get("unique", False),
        })
    return indexes


def get_indexed_fields(indexes: List[Dict[str, Any]]) -> Set[str]:
    """Extract the set of indexed field names from index descriptions."""
    fields: Set[str] = set()
    for idx in indexes:
        for key_pair in idx.get("keys", []):
            if isinstance(key_pair, (list, tuple)) and len(key_pair) >= 1:
                fields.add(str(key_pair[0]))
            elif isinstance(key_pair, str):
                fields.add(key_pair)
    return fields


# ---------------------- EXPLAIN ----------------------

def explain_find(
    collection: Collection,
    mongo_filter: Dict[str, Any],
    verbosity: str = "executionStats",
) -> Dict[str, Any]:
    """Explain a ``find`` on the collection and return the full explain output.

    Runs the ``explain`` command directly so the requested verbosity
    reaches the server.
    """
    if verbosity not in EXPLAIN_VERBOSITIES:
        raise ValueError(f"Unknown explain verbosity: {verbosity}")

    command = {
        "explain": {
            "find": collection.name,
            "filter": mongo_filter,
            "maxTimeMS": QUERY_TIMEOUT_MS,
        },
        "verbosity": verbosity,
    }
    return collection.database.command(command)


def explain_title_query(collection: Collection, title: str) -> Dict[str, Any]:
    """Return the ``executionStats`` section for a lookup by title."""
    explain = explain_find(collection, {"title": title})
    return explain.get("executionStats", {})


def winning_plan_stages(explain: Dict[str, Any]) -> List[str]:
    """Walk the winning plan from the root stage down its input stages."""
    plan: Optional[Dict[str, Any]] = explain.get("queryPlanner", {}).get("winningPlan")
    stages: List[str] = []
    while plan:
        # Newer servers wrap the classic plan in ``queryPlan``
        if "queryPlan" in plan and "stage" not in plan:
            plan = plan["queryPlan"]
            continue
        stages.append(plan.get("stage", "UNKNOWN"))
        plan = plan.get("inputStage")
    return stages


def _collect_stages(stage: Optional[Dict[str, Any]], stages: List[str]) -> List[str]:
    """Depth-first walk over ``inputStage`` and ``inputStages`` (OR, SORT_MERGE)."""
    if not stage:
        return stages
    stages.append(stage.get("stage", "UNKNOWN"))
    _collect_stages(stage.get("inputStage"), stages)
    for child in stage.get("inputStages", []):
        _collect_stages(child, stages)
    return stages


def summarize_execution_stats(execution_stats: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce ``executionStats`` to the counters worth printing.

    Slot-based engine plans do not name an IXSCAN stage, so examined index
    keys also count as index use.
    """
    stages = _collect_stages(execution_stats.get("executionStages"), [])
    keys_examined = execution_stats.get("totalKeysExamined", 0)

    return {
        "nReturned": execution_stats.get("nReturned", 0),
        "executionTimeMillis": execution_stats.get("executionTimeMillis", 0),
        "totalKeysExamined": keys_examined,
        "totalDocsExamined": execution_stats.get("totalDocsExamined", 0),
        "stages": " <- ".join(stages),
        "used_index": "IXSCAN" in stages or keys_examined > 0,
    }
