"""In-memory build descriptor model.

Only the parts of a POM that manipulators work with are modelled:

- ``Model``: project coordinates, module list and the optional ``Build``
- ``Build``: the ordered ``<build>/<plugins>`` collection
- ``Plugin`` / ``PluginExecution``: plugin declarations and their bindings
- ``ConfigNode``: the generic ``<configuration>`` tree

Everything else in the POM stays in the parsed XML document held by the
``Project`` and is written back untouched (see :mod:`pomanip.pom`).

@QK
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

DEFAULT_PLUGIN_GROUP = "org.apache.maven.plugins"
DEFAULT_EXECUTION_ID = "default"


def ga(group_id: str, artifact_id: str) -> str:
    """Return the ``group:artifact`` key used to index plugins."""
    return f"{group_id}:{artifact_id}"


@dataclass
class ConfigNode:
    """One node of a ``<configuration>`` tree.

    ``content`` is either a scalar string (leaf) or a list of child nodes.
    """

    tag: str
    content: Union[str, List["ConfigNode"]] = field(default_factory=list)

    @classmethod
    def scalar(cls, tag: str, value: Any) -> "ConfigNode":
        if isinstance(value, bool):
            value = "true" if value else "false"
        return cls(tag, str(value))

    @property
    def is_scalar(self) -> bool:
        return isinstance(self.content, str)

    @property
    def value(self) -> Optional[str]:
        return self.content if isinstance(self.content, str) else None

    @property
    def children(self) -> List["ConfigNode"]:
        return self.content if isinstance(self.content, list) else []

    def add_child(self, child: "ConfigNode") -> None:
        if isinstance(self.content, str):
            raise TypeError(f"Cannot add children to scalar node <{self.tag}>")
        self.content.append(child)

    def child(self, tag: str) -> Optional["ConfigNode"]:
        for c in self.children:
            if c.tag == tag:
                return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to plain data (scalars as strings, children as dicts)."""
        if isinstance(self.content, str):
            return {self.tag: self.content}
        return {self.tag: [c.to_dict() for c in self.content]}


@dataclass
class PluginExecution:
    """A phase-bound invocation of one or more plugin goals."""

    id: str = DEFAULT_EXECUTION_ID
    phase: Optional[str] = None
    goals: List[str] = field(default_factory=list)
    configuration: Optional[ConfigNode] = None

    def add_goal(self, goal: str) -> None:
        if goal not in self.goals:
            self.goals.append(goal)


@dataclass
class Plugin:
    group_id: str = DEFAULT_PLUGIN_GROUP
    artifact_id: str = ""
    version: Optional[str] = None
    # None means the POM does not say; Maven treats that as inherited.
    inherited: Optional[bool] = None
    executions: List[PluginExecution] = field(default_factory=list)
    configuration: Optional[ConfigNode] = None

    @property
    def key(self) -> str:
        return ga(self.group_id, self.artifact_id)

    def add_execution(self, execution: PluginExecution) -> None:
        self.executions.append(execution)

    def executions_as_map(self) -> Dict[str, PluginExecution]:
        return {e.id: e for e in self.executions}


@dataclass
class Build:
    """The ``<build>`` section: an ordered, identity-unique plugin list."""

    plugins: List[Plugin] = field(default_factory=list)

    def plugins_as_map(self) -> Dict[str, Plugin]:
        return {p.key: p for p in self.plugins}

    def add_plugin(self, plugin: Plugin) -> None:
        if plugin.key in self.plugins_as_map():
            raise ValueError(f"Duplicate plugin declaration: {plugin.key}")
        self.plugins.append(plugin)

    def __iter__(self) -> Iterator[Plugin]:
        return iter(self.plugins)


@dataclass
class Model:
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: str = "jar"
    modules: List[str] = field(default_factory=list)
    build: Optional[Build] = None

    @property
    def coordinates(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


@dataclass(eq=False)
class Project:
    """A project in the current build.

    ``pom`` is the resolved path of the descriptor file and is what the
    session's execution root is compared against. Projects hash by identity
    so they can be collected into result sets.
    """

    pom: Path
    model: Model
    document: Any = None
    # Comments and processing instructions ahead of the root element.
    prolog: List[Any] = field(default_factory=list)

    def __str__(self) -> str:
        return self.model.coordinates
