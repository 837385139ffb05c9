"""pomanip manipulator template.

Copy this file, edit it, and load it with:

  pomanip apply pom.xml -Dversion.suffix=redhat-1 --manipulator-dir ./examples/manipulators

A manipulator module must define:

- ``MANIPULATOR_NAME = "..."``
- ``pomanip_manipulator``: a factory (usually the class) for an object with
  ``init(session)``, ``scan(projects, session)`` and
  ``apply_changes(projects, session) -> set``

This example appends ``-<suffix>`` to the execution root's version when
``version.suffix`` is set.

Tips:
- Register a state in ``init`` even when disabled; other manipulators ask
  the session whether *any* manipulator is enabled.
- Only mutate models in ``apply_changes`` and return exactly the projects
  you changed.

@QK
"""

from __future__ import annotations

from dataclasses import dataclass

from pomanip.pluginsystem import Manipulator
from pomanip.session import ManipulationState

MANIPULATOR_NAME = "version-suffix"

SUFFIX_PROPERTY = "version.suffix"


@dataclass(frozen=True)
class VersionSuffixState(ManipulationState):
    suffix: str = ""


class VersionSuffixManipulator(Manipulator):
    def init(self, session):
        suffix = session.user_properties.get(SUFFIX_PROPERTY, "").strip()
        session.set_state(VersionSuffixState(enabled=bool(suffix), suffix=suffix))

    def apply_changes(self, projects, session):
        state = session.get_state(VersionSuffixState)
        if not state.enabled:
            return set()

        tail = f"-{state.suffix}"
        for project in projects:
            if project.pom != session.execution_root:
                continue
            model = project.model
            if model.version and not model.version.endswith(tail):
                model.version = model.version + tail
                return {project}
        return set()


pomanip_manipulator = VersionSuffixManipulator
