"""pomanip manipulation engine.

This module contains the high-level orchestration for one manipulation run:
load the project tree, build a session, run every manipulator through its
lifecycle and save the POMs that changed.

The report schema looks roughly like:

- tool: {name, version}
- generated_utc: report timestamp
- execution_root: root POM path
- projects: [{pom, coordinates}]
- manipulators: [{name, changed}]
- changed: [{pom, coordinates, plugins}]
- written: whether changed POMs were saved
- timing: {seconds}

@QK
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from . import __version__
from .errors import ManipulationError
from .model import Project
from .pluginsystem import ManipulationResult, discover_manipulators, run_manipulators
from .pom import load_projects, missing_plugins, write_pom
from .session import ManipulationSession
from .utils import now_utc

logger = logging.getLogger(__name__)


class ManipulationManager:
    """Runs the discovered manipulators over a multi-module build.

    The manager holds no per-run state: each ``manipulate()`` call loads the
    projects afresh and returns a complete report dict.
    """

    def __init__(
        self,
        manipulator_dirs: Optional[List[str]] = None,
        enabled_manipulators: Optional[List[str]] = None,
        include_builtin_manipulators: bool = True,
    ) -> None:
        self.manipulator_dirs = manipulator_dirs or []
        self.enabled_manipulators = enabled_manipulators
        self.include_builtin_manipulators = include_builtin_manipulators

    def apply(
        self,
        projects: List[Project],
        session: ManipulationSession,
    ) -> ManipulationResult:
        """Run the manipulator lifecycle over already-loaded projects."""

        manipulators = discover_manipulators(
            manipulator_dirs=self.manipulator_dirs,
            include_builtins=self.include_builtin_manipulators,
        )
        logger.info("Manipulators: %s", ", ".join(sorted(manipulators)) or "(none)")
        return run_manipulators(
            manipulators=manipulators,
            enabled=self.enabled_manipulators,
            projects=projects,
            session=session,
        )

    def manipulate(
        self,
        root_pom: Union[str, Path],
        user_properties: Optional[Mapping[str, str]] = None,
        *,
        write: bool = True,
    ) -> Dict[str, Any]:
        """Manipulate the build rooted at *root_pom* and return a report."""

        root = Path(root_pom).resolve()
        if not root.is_file():
            raise FileNotFoundError(str(root))

        t0 = time.time()

        projects = load_projects(root)
        session = ManipulationSession(user_properties, execution_root=root)
        result = self.apply(projects, session)

        # Keep the load order so the report is stable.
        changed = [p for p in projects if p in result.changed]
        plugins: Dict[Project, List[str]] = {p: [pl.key for pl in missing_plugins(p)] for p in changed}
        if write:
            for project in changed:
                try:
                    write_pom(project)
                except OSError as e:
                    raise ManipulationError(f"Cannot write {project.pom}: {e}") from e

        report: Dict[str, Any] = {
            "tool": {"name": "pomanip", "version": __version__},
            "generated_utc": now_utc(),
            "execution_root": str(root),
            "projects": [
                {"pom": os.path.relpath(p.pom, root.parent), "coordinates": p.model.coordinates}
                for p in projects
            ],
            "manipulators": [
                {
                    "name": name,
                    "changed": [p.model.coordinates for p in projects if p in touched],
                }
                for name, touched in result.per_manipulator.items()
            ],
            "changed": [
                {
                    "pom": os.path.relpath(p.pom, root.parent),
                    "coordinates": p.model.coordinates,
                    "plugins": plugins[p],
                }
                for p in changed
            ],
            "written": write,
        }
        report["timing"] = {"seconds": round(time.time() - t0, 4)}
        return report
