"""
Command line interface.

    appservice-api routes appservice_api.demo
    appservice-api serve appservice_api.demo --port 8000
"""

from __future__ import annotations

import importlib
import json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from appservice_api import __version__
from appservice_api.core.errors import AppServiceError
from appservice_api.runtime.app_factory import configure_container, run_app
from appservice_api.runtime.config import ServerConfig
from appservice_api.runtime.container import ServiceContainer
from appservice_api.runtime.route_generator import AppServiceRouteGenerator, MappedRoute

app = typer.Typer(
    name="appservice-api",
    help="Expose application service classes as HTTP endpoints",
    no_args_is_help=True,
)
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"appservice-api {__version__}")
        raise typer.Exit()


@app.callback()
def root(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """appservice-api command line."""


def _import(module: str) -> None:
    try:
        importlib.import_module(module)
    except ImportError as e:
        typer.echo(f"Cannot import '{module}': {e}", err=True)
        raise typer.Exit(code=1)


def _route_row(mapped: MappedRoute) -> dict[str, str | int | None]:
    return {
        "method": mapped.http_method.value,
        "path": mapped.full_path,
        "shape": mapped.method.shape.value,
        "status": mapped.plan.status_code,
        "permission": mapped.method.permission,
        "handler": mapped.handler,
    }


@app.command(name="routes")
def routes(
    module: Annotated[str, typer.Argument(help="Module or package containing the services")],
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    lenient: Annotated[
        bool,
        typer.Option("--lenient", help="Map unsupported signatures with the fallback handler"),
    ] = False,
) -> None:
    """Print the routes generated for MODULE."""
    _import(module)
    # Listing only; nothing is served, so authentication settings do not matter
    config = ServerConfig.from_env(require_auth=False, strict_shapes=not lenient)

    container = ServiceContainer()
    generator = AppServiceRouteGenerator(container, config=config)
    try:
        configure_container(module, container)
        mapped = generator.add_services(module)
    except AppServiceError as e:
        typer.echo(f"Registration failed: {e}", err=True)
        raise typer.Exit(code=1)

    rows = [_route_row(m) for m in mapped]
    if output_json:
        typer.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        console.print(f"[dim]No application services found in {module}.[/dim]")
        return

    table = Table(title=f"Routes for {module}")
    table.add_column("Method", style="bold")
    table.add_column("Path")
    table.add_column("Shape", style="dim")
    table.add_column("Status")
    table.add_column("Permission")
    table.add_column("Handler", style="dim")
    for row in rows:
        table.add_row(
            str(row["method"]),
            str(row["path"]),
            str(row["shape"]),
            str(row["status"]),
            str(row["permission"] or ""),
            str(row["handler"]),
        )
    console.print(table)
    console.print(f"\n[dim]{len(rows)} route(s)[/dim]")


@app.command(name="serve")
def serve(
    module: Annotated[str, typer.Argument(help="Module or package containing the services")],
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port")] = 8000,
    reload: Annotated[bool, typer.Option("--reload/--no-reload", help="Reload on changes")] = False,
) -> None:
    """Serve the services of MODULE with uvicorn."""
    _import(module)
    try:
        run_app(module, host=host, port=port, reload=reload)
    except AppServiceError as e:
        typer.echo(f"Startup failed: {e}", err=True)
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
