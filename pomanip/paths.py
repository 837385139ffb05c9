"""pomanip package locations.

@QK
"""

from __future__ import annotations

from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent
TEMPLATE_DIR = PACKAGE_DIR / "templates"
DEFAULT_POM_NAME = "pom.xml"


def resolve_pom(path: str) -> Path:
    """Resolve a CLI path argument to a POM file (directories get ``pom.xml``)."""
    p = Path(path)
    if p.is_dir():
        p = p / DEFAULT_POM_NAME
    return p.resolve()
