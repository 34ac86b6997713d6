"""
Main entry point for the web clipper

    python -m src.main URL [--template FILE ...] [--html FILE] [--validate]
"""

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from src import __version__
from src.clipper import ClipperEngine, ClipResult, ClipTemplate, default_template
from src.page import PageSnapshot
from src.templating import DEFAULT_REGISTRY, Severity, ValidationReport
from src.utils import get_logger, setup_logging

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="obsidian-clip",
        description="Clip a web page into an Obsidian note using a clip template",
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("url", nargs="?", default="", help="page to clip")
    parser.add_argument(
        "-t",
        "--template",
        action="append",
        type=Path,
        default=[],
        metavar="FILE",
        help="clip template JSON (repeatable; triggers pick among them)",
    )
    parser.add_argument(
        "--html",
        type=Path,
        metavar="FILE",
        help="read the page from a saved HTML file instead of fetching URL",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="only check the templates and print diagnostics",
    )
    parser.add_argument(
        "--uri", action="store_true", help="print the obsidian:// URI as well"
    )
    return parser


def print_reports(template: ClipTemplate, reports: dict[str, ValidationReport]) -> None:
    if not reports:
        console.print(f"[green]✓[/green] {template.name}: no issues")
        return

    table = Table(title=template.name)
    table.add_column("Location")
    table.add_column("Line", justify="right")
    table.add_column("Severity")
    table.add_column("Message")
    for location, report in reports.items():
        for issue in report.issues:
            color = "red" if issue.severity is Severity.ERROR else "yellow"
            table.add_row(
                location,
                str(issue.line),
                f"[{color}]{issue.severity.value}[/{color}]",
                issue.message,
            )
    console.print(table)


def print_result(result: ClipResult, show_uri: bool) -> None:
    console.rule(f"{result.note.file_path}  ({result.template_name})")
    console.print(result.note.text, markup=False, highlight=False)
    if show_uri:
        console.rule("URI")
        console.print(result.uri, markup=False, highlight=False)


async def run(args: argparse.Namespace) -> int:
    logger = get_logger("main")
    engine = ClipperEngine()

    try:
        engine.load_templates(args.template)
    except (OSError, ValidationError) as exc:
        logger.error("Failed to load template", error=str(exc))
        console.print(f"[red]Could not load template:[/red] {exc}")
        return 2

    if args.validate:
        templates = engine.templates or [default_template()]
        has_errors = False
        for template in templates:
            reports = engine.generator.validate(template)
            print_reports(template, reports)
            has_errors = has_errors or any(r.errors for r in reports.values())
        return 1 if has_errors else 0

    if args.html:
        try:
            snapshot = PageSnapshot.from_file(args.html, url=args.url)
        except OSError as exc:
            logger.error("Failed to read HTML file", path=str(args.html), error=str(exc))
            console.print(f"[red]Could not read {args.html}:[/red] {exc}")
            return 2
        result = await engine.clip_snapshot(snapshot)
    elif args.url:
        result = await engine.clip(args.url)
    else:
        console.print("[red]A URL or --html FILE is required[/red]")
        return 2

    if result is None:
        console.print(f"[red]Could not fetch {args.url}[/red]")
        return 1

    print_result(result, args.uri)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    setup_logging()
    logger = get_logger("main")
    logger.debug("Starting web clipper", version=__version__)

    # filters are registered at import time; nothing may add more from here on
    DEFAULT_REGISTRY.freeze()
    return asyncio.run(run(args))


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nStopped by user")
        sys.exit(130)
