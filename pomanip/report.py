"""Report formatting and rendering.

The engine produces a single *canonical* report object (a Python ``dict``).
This module converts that dict into human-facing formats:

- **Text**: quick terminal-friendly summary.
- **HTML**: a single-file, offline report (no external assets).

HTML rendering uses Jinja2 templates shipped with the package.

@QK
"""

from __future__ import annotations

import json
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape


def format_text(report: Dict[str, Any]) -> str:
    """Format a report dict as a compact text summary."""

    lines: list[str] = []

    tool = report.get("tool", {})
    lines.append(f"{tool.get('name', 'pomanip')} v{tool.get('version', '')}")
    if report.get("generated_utc"):
        lines.append(f"Generated: {report['generated_utc']}")
    lines.append("")

    lines.append("Build")
    lines.append("-----")
    lines.append(f"Root:     {report.get('execution_root', '')}")
    lines.append(f"Projects: {len(report.get('projects', []))}")
    for p in report.get("projects", []):
        lines.append(f"  {p.get('coordinates')}  ({p.get('pom')})")
    lines.append("")

    lines.append("Manipulators")
    lines.append("------------")
    manipulators = report.get("manipulators", [])
    if not manipulators:
        lines.append("None")
    for m in manipulators:
        changed = m.get("changed") or []
        lines.append(f"{m.get('name')}: {len(changed)} project(s) changed")
    lines.append("")

    lines.append("Changed")
    lines.append("-------")
    changed = report.get("changed", [])
    if not changed:
        lines.append("None")
    for c in changed:
        lines.append(f"{c.get('coordinates')}  ({c.get('pom')})")
        for key in c.get("plugins") or []:
            lines.append(f"  + {key}")
    if changed and not report.get("written", True):
        lines.append("(dry run: nothing written)")
    lines.append("")

    return "\n".join(lines)


def render_html(report: Dict[str, Any], *, template_dir: str, template_name: str = "report.html.j2") -> str:
    """Render a single-report HTML page.

    We also embed ``report_json`` so the page can offer a "Download JSON"
    button without requiring a server.
    """

    env = Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    tpl = env.get_template(template_name)

    report_json = json.dumps(report, ensure_ascii=False, sort_keys=True, indent=2)
    return tpl.render(report=report, report_json=report_json)
