"""Seed data for the discovery query catalog."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

DEFAULT_QUERIES_PATH = Path(__file__).with_name("discovery_queries.yaml")


def load_query_definitions(path: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
    """Read query definitions from a catalog YAML file.

    Each definition carries label, enabled, priority, payload and notes.
    """
    with open(path or DEFAULT_QUERIES_PATH, "r") as f:
        data = yaml.safe_load(f) or {}

    definitions = []
    for entry in data.get("queries", []):
        if not entry.get("label") or not isinstance(entry.get("payload"), dict):
            raise ValueError(f"Query definition needs a label and a payload mapping: {entry!r}")
        definitions.append(
            {
                "label": entry["label"],
                "enabled": entry.get("enabled", True),
                "priority": int(entry.get("priority", 0)),
                "payload": entry["payload"],
                "notes": entry.get("notes"),
            }
        )
    return definitions
