"""Typer console interface for the ``pocketbook`` backend.

Environment variables (``POCKETBOOK_HOME``, ``POCKETBOOK_LOG_LEVEL``...) are
loaded from a local ``.env`` with ``python-dotenv`` before any command runs.
Business logic lives in :mod:`pocketbook.api`; commands here only parse
arguments, call a :class:`~pocketbook.api.Backend`, and print JSON.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv

from .api import Backend
from .errors import PocketbookError
from .logging_setup import configure_logging

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Local shopping and ledger storage: schema, sync, and search.",
)
sync_app = typer.Typer(no_args_is_help=True, help="Merge scraped payment JSON into storage.")
app.add_typer(sync_app, name="sync")


def _echo_json(value: Any) -> None:
    typer.echo(json.dumps(value, ensure_ascii=False, indent=2, default=str))


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _load_payments(path: Path) -> list[dict[str, Any]]:
    """Read one payment object, or a list of them, from ``path``."""

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        _fail(f"cannot read {path}: {e}")
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(d, dict) for d in data):
        return data
    _fail(f"{path} must hold a payment object or a list of payment objects")
    return []


@app.command()
def status() -> None:
    """Show the configured database and its tables."""

    _echo_json(asdict(Backend().status()))


@app.command("init")
def init_cmd(
    path: Annotated[
        Path | None, typer.Argument(help="Database file (default: app storage dir)")
    ] = None,
) -> None:
    """Create or upgrade a database and make it the configured one."""

    try:
        _echo_json(asdict(Backend().initialize(path)))
    except PocketbookError as e:
        _fail(str(e))


@app.command("load")
def load_cmd(path: Annotated[Path, typer.Argument(help="Existing database file")]) -> None:
    """Point the app at an existing database file."""

    try:
        _echo_json(asdict(Backend().load_existing(path)))
    except PocketbookError as e:
        _fail(str(e))


@app.command()
def logout() -> None:
    """Forget the configured database path; the file is kept."""

    Backend().logout()
    typer.echo("logged out")


def _sync(provider: str, owner: str, file: Path) -> None:
    from pydantic import ValidationError as PayloadError

    backend = Backend()
    sync = backend.sync_naver_payment if provider == "naver" else backend.sync_coupang_payment
    results = []
    try:
        for payload in _load_payments(file):
            results.append(asdict(sync(owner, payload)))
    except PayloadError as e:
        _fail(f"invalid {provider} payment: {e}")
    except PocketbookError as e:
        _fail(str(e))
    _echo_json({"provider": provider, "synced": len(results), "results": results})


@sync_app.command("naver")
def sync_naver(
    file: Annotated[Path, typer.Argument(help="JSON file with Naver Pay payment(s)")],
    owner: Annotated[str, typer.Option("--owner", help="Owner id the payments belong to")],
) -> None:
    """Sync Naver Pay payments from a JSON file."""

    _sync("naver", owner, file)


@sync_app.command("coupang")
def sync_coupang(
    file: Annotated[Path, typer.Argument(help="JSON file with Coupang order(s)")],
    owner: Annotated[str, typer.Option("--owner", help="Owner id the orders belong to")],
) -> None:
    """Sync Coupang orders from a JSON file."""

    _sync("coupang", owner, file)


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Product name fragment")],
    limit: Annotated[int, typer.Option(help="Maximum results")] = 50,
) -> None:
    """Search purchased products across both providers."""

    try:
        _echo_json(Backend().search_products(query, limit=limit))
    except PocketbookError as e:
        _fail(str(e))


@app.command()
def stats() -> None:
    """Row counts per table."""

    try:
        _echo_json(Backend().table_stats())
    except PocketbookError as e:
        _fail(str(e))


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


def main() -> None:  # pragma: no cover - console script entry
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
