"""
Response formatter: JSON-safe documents and the printed form of each
demo result.
"""

import json
from typing import Any, Dict, List


def colour(text, code):
    """Wrap text in an ANSI SGR code for terminal headings."""
    return f"\033[{code}m{text}\033[0m"


def cyan(t):   return colour(t, 36)
def bold(t):   return colour(t, 1)


def clean_documents(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sanitise non-JSON-serialisable values (ObjectId, datetime, etc.)."""
    return [_sanitise_value(doc) for doc in results]


def _sanitise_value(obj: Any) -> Any:
    """Recursively convert non-JSON-safe types to safe representations."""
    if isinstance(obj, dict):
        return {k: _sanitise_value(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitise_value(item) for item in obj]
    if isinstance(obj, bytes):
        try:
            return obj.decode("utf-8")
        except UnicodeDecodeError:
            return f"[binary {len(obj)} bytes]"
    if isinstance(obj, (int, float, str, bool, type(None))):
        return obj
    # datetime, ObjectId, Decimal128, etc.
    return str(obj)


def to_json(value: Any, indent: int = 2) -> str:
    return json.dumps(_sanitise_value(value), indent=indent)


def format_section(title: str) -> str:
    return f"\n--- {title} ---"


def format_result(label: str, value: Any) -> str:
    """Render one labelled result: scalars inline, documents as indented JSON."""
    if isinstance(value, (dict, list, tuple)):
        return f"{label} {to_json(value)}"
    return f"{label} {value}"


def print_section(title: str) -> None:
    print(bold(cyan(format_section(title))))


def print_result(label: str, value: Any) -> None:
    print(format_result(label, value))
