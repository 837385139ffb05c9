"""Read and write ``pom.xml`` files.

The parser keeps the whole XML document (comments included) on the
``Project`` and extracts a :class:`~pomanip.model.Model` for manipulators to
work on. Writing goes the other way: model changes that pomanip knows about
(project version, newly declared build plugins) are merged back into the
original document, so everything else in the POM survives a round trip:
comments and processing instructions ahead of ``<project>`` are written
back, and only the elements pomanip adds get fresh indentation. The new
file is written beside the old one and then moved over it.

Both namespaced (``http://maven.apache.org/POM/4.0.0``) and bare POMs are
supported.

@QK
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable, List, Optional, Set, Tuple, Union

from .errors import ManipulationError
from .model import (
    DEFAULT_EXECUTION_ID,
    DEFAULT_PLUGIN_GROUP,
    Build,
    ConfigNode,
    Model,
    Plugin,
    PluginExecution,
    Project,
    ga,
)
from .utils import parse_bool

logger = logging.getLogger(__name__)

POM_NS = "http://maven.apache.org/POM/4.0.0"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

ET.register_namespace("", POM_NS)
ET.register_namespace("xsi", XSI_NS)

PathLike = Union[str, Path]
Qualifier = Callable[[str], str]


# ---------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------


def _qualifier(root: ET.Element) -> Qualifier:
    """Return a function that qualifies local tag names in *root*'s namespace."""

    if root.tag.startswith("{"):
        ns = root.tag[1 : root.tag.index("}")]
        return lambda tag: f"{{{ns}}}{tag}"
    return lambda tag: tag


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _elements(parent: ET.Element) -> List[ET.Element]:
    # Comments and processing instructions have non-string tags.
    return [c for c in parent if isinstance(c.tag, str)]


def _text(parent: Optional[ET.Element], tag: str, q: Qualifier) -> Optional[str]:
    if parent is None:
        return None
    el = parent.find(q(tag))
    if el is None or el.text is None:
        return None
    return el.text.strip()


def _read_prolog(data: bytes) -> List[Any]:
    """Collect the comments and processing instructions before the root element."""

    pull = ET.XMLPullParser(events=("start", "comment", "pi"))
    pull.feed(data)
    prolog: List[Any] = []
    for event, node in pull.read_events():
        if event == "start":
            break
        prolog.append(node)
    pull.close()
    return prolog


def _parse(path: Path) -> Tuple[ET.ElementTree, List[Any]]:
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
    try:
        data = path.read_bytes()
        parser.feed(data)
        tree = ET.ElementTree(parser.close())
    except (OSError, ET.ParseError) as e:
        raise ManipulationError(f"Cannot read POM {path}: {e}") from e
    return tree, _read_prolog(data)


# ---------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------


def _read_config(el: ET.Element) -> ConfigNode:
    children = _elements(el)
    if not children:
        return ConfigNode(_local(el.tag), (el.text or "").strip())
    return ConfigNode(_local(el.tag), [_read_config(c) for c in children])


def _read_execution(el: ET.Element, q: Qualifier) -> PluginExecution:
    execution = PluginExecution(
        id=_text(el, "id", q) or DEFAULT_EXECUTION_ID,
        phase=_text(el, "phase", q),
    )
    goals = el.find(q("goals"))
    if goals is not None:
        for g in goals.findall(q("goal")):
            if g.text and g.text.strip():
                execution.add_goal(g.text.strip())
    cfg = el.find(q("configuration"))
    if cfg is not None:
        execution.configuration = _read_config(cfg)
    return execution


def _read_plugin(el: ET.Element, q: Qualifier) -> Plugin:
    inherited = _text(el, "inherited", q)
    plugin = Plugin(
        group_id=_text(el, "groupId", q) or DEFAULT_PLUGIN_GROUP,
        artifact_id=_text(el, "artifactId", q) or "",
        version=_text(el, "version", q),
        inherited=None if inherited is None else parse_bool(inherited),
    )
    executions = el.find(q("executions"))
    if executions is not None:
        for ex in executions.findall(q("execution")):
            plugin.add_execution(_read_execution(ex, q))
    cfg = el.find(q("configuration"))
    if cfg is not None:
        plugin.configuration = _read_config(cfg)
    return plugin


def _read_build(el: ET.Element, q: Qualifier, path: Path) -> Build:
    build = Build()
    plugins = el.find(q("plugins"))
    if plugins is None:
        return build
    for p in plugins.findall(q("plugin")):
        try:
            build.add_plugin(_read_plugin(p, q))
        except ValueError as e:
            raise ManipulationError(f"{path}: {e}") from e
    return build


def load_pom(path: PathLike) -> Project:
    """Parse a single POM into a :class:`Project`."""

    pom = Path(path).resolve()
    tree, prolog = _parse(pom)
    root = tree.getroot()
    if _local(root.tag) != "project":
        raise ManipulationError(f"{pom} is not a POM (root element <{_local(root.tag)}>)")

    q = _qualifier(root)
    parent = root.find(q("parent"))

    model = Model(
        group_id=_text(root, "groupId", q) or _text(parent, "groupId", q),
        artifact_id=_text(root, "artifactId", q),
        version=_text(root, "version", q) or _text(parent, "version", q),
        packaging=_text(root, "packaging", q) or "jar",
    )

    modules = root.find(q("modules"))
    if modules is not None:
        model.modules = [m.text.strip() for m in modules.findall(q("module")) if m.text and m.text.strip()]

    build = root.find(q("build"))
    if build is not None:
        model.build = _read_build(build, q, pom)

    logger.debug("Loaded %s from %s", model.coordinates, pom)
    return Project(pom=pom, model=model, document=tree, prolog=prolog)


def load_projects(root_pom: PathLike) -> List[Project]:
    """Load the root POM and every module below it, root first.

    Modules are followed depth first. A module entry may name a directory
    (holding ``pom.xml``) or a POM file; each POM is loaded once.
    """

    projects: List[Project] = []
    seen: Set[Path] = set()
    pending = [Path(root_pom).resolve()]

    while pending:
        path = pending.pop()
        if path in seen:
            continue
        seen.add(path)

        project = load_pom(path)
        projects.append(project)

        children: List[Path] = []
        for module in project.model.modules:
            target = (path.parent / module).resolve()
            if target.is_dir():
                target = target / "pom.xml"
            if not target.is_file():
                raise ManipulationError(f"Module '{module}' of {project} not found at {target}")
            children.append(target)

        # Reverse so the first declared module is visited next.
        pending.extend(reversed(children))

    return projects


# ---------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------


def _indent_unit(root: ET.Element) -> str:
    """Guess the document's indentation step from the root's first line."""

    text = root.text or ""
    if "\n" in text:
        unit = text.rsplit("\n", 1)[-1]
        if unit and not unit.strip():
            return unit
    return "  "


def _append_indented(parent: ET.Element, child: ET.Element, depth: int, space: str) -> None:
    """Append *child* at nesting *depth*, touching only the whitespace around it."""

    ET.indent(child, space=space, level=depth)
    inner = "\n" + space * depth
    if len(parent):
        last = parent[-1]
        closing = last.tail if last.tail and not last.tail.strip() else "\n" + space * (depth - 1)
        last.tail = inner
    else:
        closing = "\n" + space * (depth - 1)
        parent.text = inner
    child.tail = closing
    parent.append(child)


def _child(parent: ET.Element, tag: str, q: Qualifier, depth: int, space: str) -> ET.Element:
    """Return ``parent/tag``, creating it at the end if missing."""

    el = parent.find(q(tag))
    if el is None:
        el = ET.Element(q(tag))
        _append_indented(parent, el, depth, space)
    return el


def _config_element(node: ConfigNode, q: Qualifier) -> ET.Element:
    el = ET.Element(q(node.tag))
    if node.is_scalar:
        el.text = node.value
    else:
        for c in node.children:
            el.append(_config_element(c, q))
    return el


def _plugin_element(plugin: Plugin, q: Qualifier) -> ET.Element:
    el = ET.Element(q("plugin"))
    ET.SubElement(el, q("groupId")).text = plugin.group_id
    ET.SubElement(el, q("artifactId")).text = plugin.artifact_id
    if plugin.version is not None:
        ET.SubElement(el, q("version")).text = plugin.version
    if plugin.inherited is not None:
        ET.SubElement(el, q("inherited")).text = "true" if plugin.inherited else "false"

    if plugin.executions:
        executions = ET.SubElement(el, q("executions"))
        for execution in plugin.executions:
            ex = ET.SubElement(executions, q("execution"))
            ET.SubElement(ex, q("id")).text = execution.id
            if execution.phase:
                ET.SubElement(ex, q("phase")).text = execution.phase
            if execution.goals:
                goals = ET.SubElement(ex, q("goals"))
                for goal in execution.goals:
                    ET.SubElement(goals, q("goal")).text = goal
            if execution.configuration is not None:
                ex.append(_config_element(execution.configuration, q))

    if plugin.configuration is not None:
        el.append(_config_element(plugin.configuration, q))
    return el


def _sync_version(root: ET.Element, model: Model, q: Qualifier, space: str) -> None:
    if model.version is None:
        return
    version = root.find(q("version"))
    if version is not None:
        version.text = model.version
        return
    if _text(root.find(q("parent")), "version", q) == model.version:
        return

    # Inherited from the parent before; declare it right after <artifactId>.
    version = ET.Element(q("version"))
    version.text = model.version
    anchor = root.find(q("artifactId"))
    if anchor is None:
        _append_indented(root, version, 1, space)
        return
    version.tail = anchor.tail
    anchor.tail = "\n" + space
    root.insert(list(root).index(anchor) + 1, version)


def _undeclared(root: ET.Element, model: Model, q: Qualifier) -> List[Plugin]:
    if model.build is None:
        return []
    plugins_el = root.find(f"{q('build')}/{q('plugins')}")
    declared: Set[str] = set()
    if plugins_el is not None:
        declared = {
            ga(_text(p, "groupId", q) or DEFAULT_PLUGIN_GROUP, _text(p, "artifactId", q) or "")
            for p in plugins_el.findall(q("plugin"))
        }
    return [p for p in model.build.plugins if p.key not in declared]


def missing_plugins(project: Project) -> List[Plugin]:
    """Plugins in *project*'s model that its POM document does not declare yet.

    This is what :func:`write_pom` would add; nothing is modified.
    """

    if project.document is None:
        return list(project.model.build.plugins) if project.model.build else []
    root = project.document.getroot()
    return _undeclared(root, project.model, _qualifier(root))


def _sync_plugins(root: ET.Element, model: Model, q: Qualifier, space: str) -> List[str]:
    missing = _undeclared(root, model, q)
    if not missing:
        return []

    plugins_el = _child(_child(root, "build", q, 1, space), "plugins", q, 2, space)
    for plugin in missing:
        _append_indented(plugins_el, _plugin_element(plugin, q), 3, space)
    return [p.key for p in missing]


def _serialize(project: Project) -> str:
    parts = ['<?xml version="1.0" encoding="UTF-8"?>']
    parts.extend(ET.tostring(node, encoding="unicode") for node in project.prolog)
    parts.append(ET.tostring(project.document.getroot(), encoding="unicode"))
    return "\n".join(parts) + "\n"


def _replace_file(out: Path, content: str) -> None:
    """Write *content* next to *out* first, then move it into place."""

    out.parent.mkdir(parents=True, exist_ok=True)
    mode = stat.S_IMODE(out.stat().st_mode) if out.exists() else 0o644
    fd, tmp = tempfile.mkstemp(prefix=f".{out.name}.", suffix=".tmp", dir=str(out.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp, mode)
        os.replace(tmp, out)
    except Exception:
        Path(tmp).unlink(missing_ok=True)
        raise


def write_pom(project: Project, path: Optional[PathLike] = None) -> List[str]:
    """Merge *project*'s model into its document and save it.

    Writes to ``project.pom`` unless *path* is given. Returns the
    ``group:artifact`` keys of plugins that were added to the XML.
    """

    tree = project.document
    if tree is None:
        raise ManipulationError(f"{project} has no parsed POM document to write")

    root = tree.getroot()
    q = _qualifier(root)
    space = _indent_unit(root)

    _sync_version(root, project.model, q, space)
    added = _sync_plugins(root, project.model, q, space)

    out = Path(path) if path is not None else project.pom
    _replace_file(out, _serialize(project))

    logger.info("Wrote %s (%d plugin(s) added)", out, len(added))
    return added
