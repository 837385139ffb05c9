"""Inject the project-sources and build-metadata plugins into the root build.

The `project-sources-maven-plugin` archives the project sources *after*
pomanip has run but *before* the normal build alters or generates anything.
The `buildmetadata-maven-plugin` captures build environment details into
``build.properties``.

Both are added to ``/project/build/plugins`` of the execution root only, and
only when they are not declared there already. This manipulator never acts
on its own: it decorates builds that some other enabled manipulator is
already transforming.

Properties:

- ``project.src.skip``: set to ``false`` to enable (default ``true``)
- ``project.src.version``: project-sources-maven-plugin version
- ``project.meta.version``: buildmetadata-maven-plugin version

@QK
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Set

from ..model import Build, ConfigNode, Plugin, PluginExecution, Project, ga
from ..pluginsystem import Manipulator
from ..session import ManipulationSession, ManipulationState
from ..utils import parse_bool

logger = logging.getLogger(__name__)

MANIPULATOR_NAME = "project-sources"

SKIP_PROPERTY = "project.src.skip"
SOURCES_VERSION_PROPERTY = "project.src.version"
METADATA_VERSION_PROPERTY = "project.meta.version"

DEFAULT_SOURCES_VERSION = "0.3"
DEFAULT_METADATA_VERSION = "1.5.2"

PROJECT_SOURCES_GID = "org.commonjava.maven.plugins"
PROJECT_SOURCES_AID = "project-sources-maven-plugin"
PROJECT_SOURCES_COORD = ga(PROJECT_SOURCES_GID, PROJECT_SOURCES_AID)
PROJECT_SOURCES_EXEC_ID = "project-sources-archive"
PROJECT_SOURCES_GOAL = "archive"

BMMP_GID = "com.redhat.rcm.maven.plugin"
BMMP_AID = "buildmetadata-maven-plugin"
BMMP_COORD = ga(BMMP_GID, BMMP_AID)
BMMP_EXEC_ID = "build-metadata"
BMMP_GOAL = "provide-buildmetadata"

INITIALIZE_PHASE = "initialize"
VALIDATE_PHASE = "validate"

# Order is the order the children are written to <configuration>.
BMMP_CONFIG: Dict[str, object] = {
    "createPropertiesReport": True,
    "createXmlReport": False,
    "hideCommandLineInfo": False,
    "hideMavenOptsInfo": False,
    "hideJavaOptsInfo": False,
    "activateOutputFileMapping": False,
    "propertiesOutputFile": "${basedir}/build.properties",
    "addJavaRuntimeInfo": True,
    "addMavenExecutionInfo": True,
    "addLocallyModifiedTagToFullVersion": False,
    "addToGeneratedSources": False,
    "validateCheckout": False,
    "forceNewProperties": True,
    "skipModules": True,
}


@dataclass(frozen=True)
class ProjectSourcesInjectingState(ManipulationState):
    sources_plugin_version: str = DEFAULT_SOURCES_VERSION
    metadata_plugin_version: str = DEFAULT_METADATA_VERSION

    @classmethod
    def from_properties(cls, props: Mapping[str, str]) -> "ProjectSourcesInjectingState":
        return cls(
            enabled=not parse_bool(props.get(SKIP_PROPERTY, "true")),
            sources_plugin_version=props.get(SOURCES_VERSION_PROPERTY, DEFAULT_SOURCES_VERSION),
            metadata_plugin_version=props.get(METADATA_VERSION_PROPERTY, DEFAULT_METADATA_VERSION),
        )


def _sources_plugin(version: str) -> Plugin:
    plugin = Plugin(group_id=PROJECT_SOURCES_GID, artifact_id=PROJECT_SOURCES_AID, version=version)
    plugin.add_execution(
        PluginExecution(id=PROJECT_SOURCES_EXEC_ID, phase=INITIALIZE_PHASE, goals=[PROJECT_SOURCES_GOAL])
    )
    return plugin


def _metadata_configuration() -> ConfigNode:
    xml = ConfigNode("configuration")
    for key, value in BMMP_CONFIG.items():
        xml.add_child(ConfigNode.scalar(key, value))
    return xml


def _metadata_plugin(version: str) -> Plugin:
    plugin = Plugin(group_id=BMMP_GID, artifact_id=BMMP_AID, version=version, inherited=False)
    plugin.add_execution(
        PluginExecution(
            id=BMMP_EXEC_ID,
            phase=VALIDATE_PHASE,
            goals=[BMMP_GOAL],
            configuration=_metadata_configuration(),
        )
    )
    return plugin


class ProjectSourcesInjectingManipulator(Manipulator):
    def init(self, session: ManipulationSession) -> None:
        session.set_state(ProjectSourcesInjectingState.from_properties(session.user_properties))

    def scan(self, projects: List[Project], session: ManipulationSession) -> None:
        pass

    def apply_changes(self, projects: List[Project], session: ManipulationSession) -> Set[Project]:
        """Add the missing plugins to the execution root's base build.

        Returns ``{root}`` when at least one plugin was injected, otherwise an
        empty set.
        """

        state = session.get_state(ProjectSourcesInjectingState)

        # Only runs when enabled *and* some other manipulator is enabled too.
        if not (state.enabled and session.any_state_enabled([ProjectSourcesInjectingState])):
            return set()

        for project in projects:
            if project.pom != session.execution_root:
                continue

            logger.info("Examining %s to apply sources/metadata plugins.", project)

            model = project.model
            if model.build is None:
                model.build = Build()
            build = model.build

            changed = False
            plugin_map = build.plugins_as_map()

            if PROJECT_SOURCES_COORD not in plugin_map:
                build.add_plugin(_sources_plugin(state.sources_plugin_version))
                logger.info("Injected %s:%s into %s", PROJECT_SOURCES_COORD, state.sources_plugin_version, project)
                changed = True

            if BMMP_COORD not in plugin_map:
                build.add_plugin(_metadata_plugin(state.metadata_plugin_version))
                logger.info("Injected %s:%s into %s", BMMP_COORD, state.metadata_plugin_version, project)
                changed = True

            if changed:
                return {project}

        return set()


pomanip_manipulator = ProjectSourcesInjectingManipulator
