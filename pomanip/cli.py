"""pomanip command-line interface.

This file is intentionally small and dependency-light:
- Argument parsing (argparse)
- Logging setup
- Writing reports in text/json/html

The heavy lifting happens in :class:`pomanip.core.ManipulationManager`.

@QK
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .core import ManipulationManager
from .errors import ManipulationError
from .paths import TEMPLATE_DIR, resolve_pom
from .report import format_text, render_html
from .utils import parse_properties


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level `pomanip` parser.

    - `pomanip apply ...`              manipulate a build
    - `pomanip manipulators list ...`  manipulator discovery utilities
    """

    p = argparse.ArgumentParser(
        prog="pomanip",
        description="pomanip - POM manipulation for multi-module Maven builds",
    )
    p.add_argument("-v", "--verbose", action="count", default=0, help="More logging (repeatable)")
    sub = p.add_subparsers(dest="command", required=True)

    # -----------------------------
    # apply
    # -----------------------------
    apply = sub.add_parser("apply", help="Run manipulators over a build and save the changed POMs")
    apply.add_argument("pom", help="Root pom.xml (or the directory holding it)")
    apply.add_argument(
        "-D",
        dest="properties",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="User property, as for mvn (repeatable)",
    )
    apply.add_argument(
        "-f",
        "--format",
        choices=["text", "json", "html"],
        default="text",
        help="Report format",
    )
    apply.add_argument("-o", "--out", help="Write the report to this file instead of stdout")
    apply.add_argument("--dry-run", action="store_true", help="Do not write changed POMs")

    apply.add_argument(
        "--manipulator-dir",
        action="append",
        default=[],
        help="Add a directory to load manipulators from (repeatable)",
    )
    apply.add_argument(
        "--enable-manipulator",
        action="append",
        default=None,
        help="Only run these manipulator names (repeatable). If omitted, all discovered manipulators run.",
    )
    apply.add_argument("--no-builtin-manipulators", action="store_true", help="Disable built-in manipulators")

    # -----------------------------
    # manipulators
    # -----------------------------
    manipulators = sub.add_parser("manipulators", help="Manipulator utilities")
    manipulators_sub = manipulators.add_subparsers(dest="manipulators_cmd", required=True)
    manipulators_list = manipulators_sub.add_parser("list", help="List available manipulators")
    manipulators_list.add_argument("--manipulator-dir", action="append", default=[])
    manipulators_list.add_argument("--no-builtin-manipulators", action="store_true")

    return p


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s", stream=sys.stderr)


def _write_text(path: Path, content: str) -> None:
    """Write UTF-8 text, creating parent directories."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def cmd_apply(args: argparse.Namespace) -> int:
    """Entry point for `pomanip apply`."""

    pom = resolve_pom(args.pom)
    if not pom.is_file():
        print(f"POM not found: {pom}", file=sys.stderr)
        return 2

    try:
        props = parse_properties(args.properties)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    engine = ManipulationManager(
        manipulator_dirs=args.manipulator_dir,
        enabled_manipulators=args.enable_manipulator,
        include_builtin_manipulators=not args.no_builtin_manipulators,
    )

    try:
        rep = engine.manipulate(pom, props, write=not args.dry_run)
    except ManipulationError as e:
        print(f"Manipulation failed: {e}", file=sys.stderr)
        return 1

    if args.format == "json":
        out = json.dumps(rep, sort_keys=True, indent=2)
    elif args.format == "html":
        out = render_html(rep, template_dir=str(TEMPLATE_DIR))
    else:
        out = format_text(rep)

    if args.out:
        _write_text(Path(args.out), out)
    elif args.format == "html":
        out_path = Path("pomanip_report.html")
        _write_text(out_path, out)
        print(str(out_path))
    else:
        print(out)
    return 0


def cmd_manipulators_list(args: argparse.Namespace) -> int:
    """List discovered manipulator names."""

    from .pluginsystem import discover_manipulators

    found = discover_manipulators(
        manipulator_dirs=args.manipulator_dir,
        include_builtins=not args.no_builtin_manipulators,
    )
    if not found:
        print("No manipulators discovered.")
        return 0

    for n in sorted(found.keys()):
        print(n)
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point used by the console_script `pomanip`."""

    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "apply":
        return cmd_apply(args)

    if args.command == "manipulators":
        if args.manipulators_cmd == "list":
            return cmd_manipulators_list(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
