"""Helpers for the JSON-in-Text columns (tags, line items, activity details, policies)."""
import json
from typing import Any, Optional


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value)


def load_json(raw: Optional[str], default: Any = None) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default
