"""Pytest configuration.

The pomanip test suite is meant to run both:
- in editable installs (pip install -e .)
- directly from a source checkout (python -m pytest)

To support the latter, we add the repository root to sys.path.

@QK
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]


def pytest_configure():
    if str(REPO_ROOT) not in sys.path:
        sys.path.insert(0, str(REPO_ROOT))


POM_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0"
         xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
         xsi:schemaLocation="http://maven.apache.org/POM/4.0.0 http://maven.apache.org/xsd/maven-4.0.0.xsd">
  <modelVersion>4.0.0</modelVersion>
  {body}
</project>
"""


def make_pom(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(POM_TEMPLATE.format(body=body), encoding="utf-8")
    return path


@pytest.fixture
def multi_module(tmp_path):
    """A root POM with two modules; returns the root pom path."""

    root = make_pom(
        tmp_path / "pom.xml",
        """
  <!-- root of the build -->
  <groupId>org.example</groupId>
  <artifactId>parent</artifactId>
  <version>1.0</version>
  <packaging>pom</packaging>
  <modules>
    <module>core</module>
    <module>web/pom.xml</module>
  </modules>
  <build>
    <plugins>
      <plugin>
        <artifactId>maven-compiler-plugin</artifactId>
        <version>3.11.0</version>
        <configuration>
          <release>11</release>
        </configuration>
      </plugin>
    </plugins>
  </build>
""",
    )
    make_pom(
        tmp_path / "core" / "pom.xml",
        """
  <parent>
    <groupId>org.example</groupId>
    <artifactId>parent</artifactId>
    <version>1.0</version>
  </parent>
  <artifactId>core</artifactId>
""",
    )
    make_pom(
        tmp_path / "web" / "pom.xml",
        """
  <parent>
    <groupId>org.example</groupId>
    <artifactId>parent</artifactId>
    <version>1.0</version>
  </parent>
  <artifactId>web</artifactId>
  <packaging>war</packaging>
""",
    )
    return root
