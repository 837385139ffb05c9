"""POM reading/writing tests.

@QK
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest
from conftest import make_pom

from pomanip.errors import ManipulationError
from pomanip.model import Build, ConfigNode, Plugin, PluginExecution
from pomanip.pom import POM_NS, load_pom, load_projects, missing_plugins, write_pom

NS = {"m": POM_NS}


def test_load_root_model(multi_module):
    project = load_pom(multi_module)

    assert project.pom == multi_module.resolve()
    m = project.model
    assert (m.group_id, m.artifact_id, m.version, m.packaging) == ("org.example", "parent", "1.0", "pom")
    assert m.modules == ["core", "web/pom.xml"]

    plugins = m.build.plugins_as_map()
    compiler = plugins["org.apache.maven.plugins:maven-compiler-plugin"]
    assert compiler.version == "3.11.0"
    assert compiler.inherited is None
    assert compiler.configuration == ConfigNode("configuration", [ConfigNode("release", "11")])


def test_module_inherits_parent_coordinates(multi_module):
    core = load_pom(multi_module.parent / "core" / "pom.xml")
    assert core.model.coordinates == "org.example:core:1.0"
    assert core.model.packaging == "jar"
    assert core.model.build is None


def test_load_projects_root_first(multi_module):
    projects = load_projects(multi_module)
    assert [p.model.artifact_id for p in projects] == ["parent", "core", "web"]
    assert projects[0].pom == multi_module.resolve()


def test_missing_module_raises(tmp_path):
    root = make_pom(
        tmp_path / "pom.xml",
        "<groupId>g</groupId><artifactId>a</artifactId><version>1</version>"
        "<modules><module>nope</module></modules>",
    )
    with pytest.raises(ManipulationError):
        load_projects(root)


def test_malformed_pom_raises(tmp_path):
    bad = tmp_path / "pom.xml"
    bad.write_text("<project><groupId>", encoding="utf-8")
    with pytest.raises(ManipulationError):
        load_pom(bad)


def test_non_pom_root_raises(tmp_path):
    bad = tmp_path / "pom.xml"
    bad.write_text("<settings/>", encoding="utf-8")
    with pytest.raises(ManipulationError):
        load_pom(bad)


def test_duplicate_plugin_declaration_raises(tmp_path):
    pom = make_pom(
        tmp_path / "pom.xml",
        "<artifactId>a</artifactId><build><plugins>"
        "<plugin><artifactId>x</artifactId></plugin>"
        "<plugin><groupId>org.apache.maven.plugins</groupId><artifactId>x</artifactId></plugin>"
        "</plugins></build>",
    )
    with pytest.raises(ManipulationError):
        load_pom(pom)


def test_reads_executions(tmp_path):
    pom = make_pom(
        tmp_path / "pom.xml",
        """
  <artifactId>a</artifactId>
  <build>
    <plugins>
      <plugin>
        <groupId>g</groupId>
        <artifactId>p</artifactId>
        <inherited>false</inherited>
        <executions>
          <execution>
            <phase>package</phase>
            <goals><goal>one</goal><goal>two</goal><goal>one</goal></goals>
            <configuration><nested><leaf>v</leaf></nested></configuration>
          </execution>
        </executions>
      </plugin>
    </plugins>
  </build>
""",
    )
    plugin = load_pom(pom).model.build.plugins_as_map()["g:p"]
    assert plugin.inherited is False
    ex = plugin.executions[0]
    assert ex.id == "default"
    assert ex.phase == "package"
    assert ex.goals == ["one", "two"]
    assert ex.configuration.child("nested").child("leaf").value == "v"


def test_write_appends_new_plugins_and_keeps_the_rest(multi_module):
    project = load_pom(multi_module)
    execution = PluginExecution(
        id="build-metadata",
        phase="validate",
        goals=["provide-buildmetadata"],
        configuration=ConfigNode("configuration", [ConfigNode.scalar("skipModules", True)]),
    )
    project.model.build.add_plugin(
        Plugin(group_id="com.example", artifact_id="meta", version="1.0", inherited=False, executions=[execution])
    )

    added = write_pom(project)
    assert added == ["com.example:meta"]

    text = multi_module.read_text(encoding="utf-8")
    assert text.startswith("<?xml")
    assert "root of the build" in text
    assert "ns0:" not in text

    root = ET.parse(str(multi_module)).getroot()
    plugins = root.findall("m:build/m:plugins/m:plugin", NS)
    assert [p.findtext("m:artifactId", namespaces=NS) for p in plugins] == ["maven-compiler-plugin", "meta"]
    meta = plugins[1]
    assert meta.findtext("m:inherited", namespaces=NS) == "false"
    assert meta.findtext("m:executions/m:execution/m:phase", namespaces=NS) == "validate"
    assert meta.findtext("m:executions/m:execution/m:goals/m:goal", namespaces=NS) == "provide-buildmetadata"
    assert meta.findtext("m:executions/m:execution/m:configuration/m:skipModules", namespaces=NS) == "true"
    assert root.findtext("m:modules/m:module", namespaces=NS) == "core"


def test_write_reload_keeps_model(multi_module):
    project = load_pom(multi_module)
    project.model.build.add_plugin(Plugin(group_id="g", artifact_id="new", version="2"))
    write_pom(project)

    again = load_pom(multi_module)
    assert list(again.model.build.plugins_as_map()) == [
        "org.apache.maven.plugins:maven-compiler-plugin",
        "g:new",
    ]
    # A second write has nothing left to add.
    assert write_pom(again) == []


def test_write_creates_build_section(multi_module):
    core_pom = multi_module.parent / "core" / "pom.xml"
    project = load_pom(core_pom)
    project.model.build = Build([Plugin(group_id="g", artifact_id="p", version="1")])
    write_pom(project)

    root = ET.parse(str(core_pom)).getroot()
    assert root.findtext("m:build/m:plugins/m:plugin/m:artifactId", namespaces=NS) == "p"


def test_write_version_update(multi_module):
    core_pom = multi_module.parent / "core" / "pom.xml"
    project = load_pom(core_pom)
    project.model.version = "1.0-redhat-1"
    write_pom(project)

    root = ET.parse(str(core_pom)).getroot()
    children = [c.tag.split("}")[-1] for c in root]
    assert children.index("version") == children.index("artifactId") + 1
    assert root.findtext("m:version", namespaces=NS) == "1.0-redhat-1"
    assert root.findtext("m:parent/m:version", namespaces=NS) == "1.0"


def test_write_keeps_header_comment_before_root(tmp_path):
    pom = tmp_path / "pom.xml"
    pom.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<!-- Licensed under the Apache License 2.0 -->\n"
        f'<project xmlns="{POM_NS}">\n'
        "  <artifactId>a</artifactId>\n"
        "</project>\n",
        encoding="utf-8",
    )
    project = load_pom(pom)
    project.model.build = Build([Plugin(group_id="g", artifact_id="p", version="1")])
    write_pom(project)

    text = pom.read_text(encoding="utf-8")
    assert "<!-- Licensed under the Apache License 2.0 -->" in text
    assert text.index("Licensed under") < text.index("<project")
    assert load_pom(pom).model.build.plugins_as_map()["g:p"].version == "1"


def test_write_leaves_existing_whitespace_alone(multi_module):
    before = multi_module.read_text(encoding="utf-8")
    project = load_pom(multi_module)
    project.model.build.add_plugin(Plugin(group_id="g", artifact_id="new", version="2"))
    write_pom(project)

    text = multi_module.read_text(encoding="utf-8")
    modules = "  <modules>\n    <module>core</module>\n    <module>web/pom.xml</module>\n  </modules>\n"
    assert modules in before
    assert modules in text
    assert "        <configuration>\n          <release>11</release>\n        </configuration>\n" in text
    assert "      <plugin>\n        <groupId>g</groupId>\n        <artifactId>new</artifactId>\n" in text


def test_missing_plugins_does_not_touch_the_document(multi_module):
    project = load_pom(multi_module)
    project.model.build.add_plugin(Plugin(group_id="g", artifact_id="new"))

    assert [p.key for p in missing_plugins(project)] == ["g:new"]
    assert [p.key for p in missing_plugins(project)] == ["g:new"]
    assert multi_module.read_text(encoding="utf-8").count("<plugin>") == 1


def test_failed_write_keeps_original_file(multi_module, monkeypatch):
    before = multi_module.read_text(encoding="utf-8")
    project = load_pom(multi_module)
    project.model.build.add_plugin(Plugin(group_id="g", artifact_id="new"))

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("pomanip.pom.os.replace", broken_replace)
    with pytest.raises(OSError):
        write_pom(project)

    assert multi_module.read_text(encoding="utf-8") == before
    assert sorted(p.name for p in multi_module.parent.iterdir()) == ["core", "pom.xml", "web"]


def test_write_bare_pom_without_namespace(tmp_path):
    pom = tmp_path / "pom.xml"
    pom.write_text("<project><artifactId>a</artifactId><version>1</version></project>", encoding="utf-8")
    project = load_pom(pom)
    assert project.model.build is None

    project.model.build = Build([Plugin(group_id="g", artifact_id="p")])
    write_pom(project, tmp_path / "out" / "pom.xml")

    root = ET.parse(str(tmp_path / "out" / "pom.xml")).getroot()
    assert root.tag == "project"
    assert root.findtext("build/plugins/plugin/groupId") == "g"
    assert root.find("build/plugins/plugin/version") is None
