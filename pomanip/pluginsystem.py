"""pomanip manipulator system.

pomanip supports three manipulator discovery mechanisms (in this order):

1) **Built-in manipulators** shipped in ``pomanip/manipulators``.
2) **Directory manipulators** supplied via ``--manipulator-dir`` (each
   ``*.py`` file can act as a manipulator).
3) **Installed entrypoint manipulators** exposed under the group
   ``pomanip.manipulators``.

A manipulator module defines:

- ``MANIPULATOR_NAME: str`` (optional, defaults to the module name)
- ``pomanip_manipulator``: a zero-argument callable (usually the class)
  returning an object with the :class:`Manipulator` methods

Manipulators run phase by phase: every ``init``, then every ``scan``, then
every ``apply_changes``. Unlike discovery, running is *not* sandboxed:
anything a manipulator raises propagates to the caller.

Security note:
Directory manipulators are arbitrary Python code. Only load ones you trust.

@QK
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .model import Project
from .session import ManipulationSession

try:
    from importlib.metadata import entry_points
except Exception:  # pragma: no cover
    entry_points = None  # type: ignore

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "pomanip.manipulators"

BUILTIN_PACKAGE = "pomanip.manipulators"
BUILTIN_DIR = Path(__file__).parent / "manipulators"


class Manipulator:
    """The lifecycle every manipulator implements.

    Subclassing is optional; any object with these three methods works.
    """

    def init(self, session: ManipulationSession) -> None:
        """Derive this manipulator's state from ``session.user_properties``."""

    def scan(self, projects: List[Project], session: ManipulationSession) -> None:
        """Read-only inspection pass."""

    def apply_changes(self, projects: List[Project], session: ManipulationSession) -> Set[Project]:
        """Mutate project models in place; return the projects changed."""
        return set()


ManipulatorFactory = Callable[[], Any]


@dataclass
class ManipulationResult:
    """Outcome of one pipeline run."""

    changed: Set[Project] = field(default_factory=set)
    # name -> projects changed by that manipulator
    per_manipulator: Dict[str, Set[Project]] = field(default_factory=dict)


def _load_module_from_file(path: Path) -> Optional[ModuleType]:
    """Load a Python module from a file path, best-effort.

    We use importlib's low-level loader so directory manipulators do not
    need to be installed packages.
    """

    mod_name = f"pomanip_ext_{path.stem}"
    try:
        spec = importlib.util.spec_from_file_location(mod_name, str(path))
        if spec is None or spec.loader is None:
            return None
        mod = importlib.util.module_from_spec(spec)
        # Dataclasses look their module up in sys.modules while executing.
        sys.modules[mod_name] = mod
        # NOTE: executing the module runs arbitrary code.
        spec.loader.exec_module(mod)
        return mod
    except Exception as e:
        sys.modules.pop(mod_name, None)
        logger.warning("Skipping manipulator file %s: %s", path, e)
        return None


def _module_to_manipulator(mod: ModuleType) -> Optional[Tuple[str, ManipulatorFactory]]:
    """Convert a loaded module into a (name, factory) pair."""

    factory = getattr(mod, "pomanip_manipulator", None)
    if not callable(factory):
        return None

    name = getattr(mod, "MANIPULATOR_NAME", None)
    if not isinstance(name, str) or not name.strip():
        name = getattr(mod, "__name__", "manipulator").rsplit(".", 1)[-1]

    return name, factory


def discover_manipulators(
    *,
    manipulator_dirs: Optional[List[str]] = None,
    include_builtins: bool = True,
) -> Dict[str, ManipulatorFactory]:
    """Discover manipulators and return a mapping: ``name -> factory``.

    If a later discovery mechanism finds a manipulator with the same name,
    it overrides earlier ones.
    """

    found: Dict[str, ManipulatorFactory] = {}

    # -----------------------------
    # 1) Built-in manipulators
    # -----------------------------
    if include_builtins:
        for py in sorted(BUILTIN_DIR.glob("*.py")):
            if py.name.startswith("__"):
                continue
            try:
                mod = importlib.import_module(f"{BUILTIN_PACKAGE}.{py.stem}")
            except Exception as e:
                logger.warning("Skipping built-in manipulator %s: %s", py.stem, e)
                continue
            item = _module_to_manipulator(mod)
            if item:
                name, factory = item
                found[name] = factory

    # -----------------------------
    # 2) User-provided manipulator directories
    # -----------------------------
    for d in manipulator_dirs or []:
        dp = Path(d)
        if not dp.exists() or not dp.is_dir():
            logger.warning("Manipulator directory not found: %s", dp)
            continue
        for py in sorted(dp.glob("*.py")):
            if py.name.startswith("__"):
                continue
            mod = _load_module_from_file(py)
            if mod is None:
                continue
            item = _module_to_manipulator(mod)
            if item:
                name, factory = item
                found[name] = factory

    # -----------------------------
    # 3) Installed entry points
    # -----------------------------
    if entry_points is not None:
        try:
            eps = entry_points()
            group = (
                eps.select(group=ENTRY_POINT_GROUP)
                if hasattr(eps, "select")
                else eps.get(ENTRY_POINT_GROUP, [])
            )
        except Exception as e:
            logger.warning("Entry point discovery failed: %s", e)
            group = []
        for ep in group:
            try:
                factory = ep.load()
            except Exception as e:
                logger.warning("Skipping entry point %s: %s", getattr(ep, "name", ep), e)
                continue
            if callable(factory):
                found[getattr(ep, "name", "manipulator")] = factory

    return found


def run_manipulators(
    *,
    manipulators: Dict[str, ManipulatorFactory],
    enabled: Optional[List[str]],
    projects: List[Project],
    session: ManipulationSession,
) -> ManipulationResult:
    """Run the enabled manipulators through init, scan and apply_changes."""

    enabled_set = None
    if enabled is not None:
        enabled_set = {e.strip() for e in enabled if isinstance(e, str) and e.strip()}

    active: List[Tuple[str, Any]] = []
    for name, factory in manipulators.items():
        if enabled_set is not None and name not in enabled_set:
            continue
        active.append((name, factory()))

    for name, m in active:
        logger.debug("init %s", name)
        m.init(session)

    for name, m in active:
        logger.debug("scan %s", name)
        m.scan(projects, session)

    result = ManipulationResult()
    for name, m in active:
        changed = set(m.apply_changes(projects, session) or ())
        if changed:
            logger.info("%s changed %d project(s)", name, len(changed))
        result.per_manipulator[name] = changed
        result.changed |= changed

    return result
