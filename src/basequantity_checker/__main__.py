"""Base Quantity Checker CLI.

Usage:
    python -m basequantity_checker <command> [options]

Commands print JSON to stdout. Logging (--verbose) goes to stderr.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from basequantity_checker.config import DEFAULT_CATALOG_PATH, DEFAULT_SCOPE
from basequantity_checker.engine import BaseQuantityChecker, outcome_message
from basequantity_checker.errors import HostError
from basequantity_checker.models.catalog import Catalog, load_catalog

app = typer.Typer(
    name="basequantity_checker",
    help="Base Quantities Checker: flag elements with zero, negative or missing quantities.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _output(data: dict) -> None:
    """Print JSON output to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(error: str) -> None:
    _output({"ok": False, "error": error})
    raise typer.Exit(1)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_catalog(path: Optional[str]) -> Catalog:
    """Load the catalog; an unusable source leaves no checks to offer."""
    catalog = load_catalog(Path(path) if path else DEFAULT_CATALOG_PATH)
    if catalog.is_empty:
        _fail(f"No categories available from catalog: {path or DEFAULT_CATALOG_PATH}")
    return catalog


def _open_host(model: str):
    """Open a model file as a host: .ifc via ifcopenshell, .json in memory."""
    path = Path(model)
    if not path.exists():
        _fail(f"Model not found: {path}")
    if path.suffix.lower() == ".ifc":
        from basequantity_checker.hosts.ifc import IfcModelHost

        return IfcModelHost.open(path)
    if path.suffix.lower() == ".json":
        from basequantity_checker.hosts.memory import InMemoryModelHost

        return InMemoryModelHost.from_file(path)
    _fail(f"Unsupported model format: {path.suffix or path.name}. Use .ifc or .json")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def version() -> None:
    """Show version."""
    from basequantity_checker import __version__

    typer.echo(f"basequantity-checker v{__version__}")


@app.command()
def categories(
    catalog: Optional[str] = typer.Option(None, "--catalog", "-c", help="Catalog JSON file"),
):
    """List catalog categories and the quantities checked for each."""
    cat = _load_catalog(catalog)
    entries = []
    for name in cat.category_names():
        if name in cat.malformed:
            entries.append({"name": name, "error": cat.malformed[name]})
            continue
        entries.append({
            "name": name,
            "quantities": [
                {"displayName": s.display_name, "keys": list(s.keys)}
                for s in cat.specs_for(name)
            ],
        })
    _output({"ok": True, "categories": entries})


@app.command()
def check(
    model: str = typer.Argument(..., help="Model file (.ifc or .json)"),
    catalog: Optional[str] = typer.Option(None, "--catalog", "-c", help="Catalog JSON file"),
    category: Optional[list[str]] = typer.Option(
        None, "--category", "-k", help="Category to check (repeatable; default: all)"
    ),
    scope: str = typer.Option(DEFAULT_SCOPE, "--scope", help="Element scope"),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Deadline per host call in seconds"
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Save the model with created selection sets"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to stderr"),
):
    """Check base quantities for one or more categories."""
    _configure_logging(verbose)
    cat = _load_catalog(catalog)

    names = cat.category_names()
    if category:
        names = []
        for requested in category:
            resolved = cat.find_category(requested)
            if resolved is None:
                _fail(
                    f"Unknown category: {requested}. "
                    f"Available: {', '.join(cat.category_names())}"
                )
            names.append(resolved)

    try:
        host = _open_host(model)
    except HostError as e:
        _fail(e.message)

    checker = BaseQuantityChecker(host, scope=scope, call_timeout=timeout)
    runnable = [n for n in names if n not in cat.malformed]
    try:
        results = asyncio.run(checker.check_catalog(cat, runnable))
    except HostError as e:
        _fail(e.message)

    # Malformed categories are reported in place; the rest still run
    by_category = {r.category: r for r in results}
    report = []
    for name in names:
        if name in cat.malformed:
            report.append({"category": name, "error": cat.malformed[name]})
            continue
        result = by_category[name]
        entry = result.to_dict()
        entry["message"] = outcome_message(result.category, result.outcome)
        report.append(entry)

    data: dict = {
        "ok": True,
        "model": str(model),
        "issues": sum(1 for r in results if r.has_issues),
        "errors": sum(1 for n in names if n in cat.malformed),
        "results": report,
    }
    if output:
        data["saved"] = str(host.save(output))

    _output(data)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
