"""Utility helpers used across pomanip.

Keep helpers *small* and *testable*; they are shared by the CLI, the engine
and the manipulators.

@QK
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional


def now_utc() -> str:
    """Return a compact UTC timestamp suitable for reports."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_bool(value: Optional[str]) -> bool:
    """Parse a property value the way Maven does: only ``true`` is true.

    Comparison is case-insensitive and ignores surrounding whitespace;
    ``None`` and anything else is false.
    """
    return value is not None and value.strip().lower() == "true"


def parse_properties(items: Iterable[str]) -> Dict[str, str]:
    """Turn ``key=value`` strings (``-D`` arguments) into a dict.

    A bare ``key`` maps to ``"true"``, as ``mvn -Dkey`` does. Later
    definitions override earlier ones.
    """

    props: Dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not key:
            raise ValueError(f"Invalid property definition: {item!r}")
        props[key] = value if sep else "true"
    return props
