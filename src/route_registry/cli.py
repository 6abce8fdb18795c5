"""
route-registry command line.

    route-registry build src/app --module-key /events --use-scope -o app/_routes.py
    route-registry routes src/app
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from route_registry import __version__
from route_registry.build import BuildPass
from route_registry.exceptions import RegistryError
from route_registry.synthesis import synthesize_list_routes

app = typer.Typer(
    name="route-registry",
    help="Discover routed handlers and generate their registration code.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"route-registry {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(exc: RegistryError) -> None:
    err_console.print(f"[bold red]Error[/bold red]: {escape(str(exc))}", highlight=False, soft_wrap=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """route-registry — build-time route registration."""


@app.command()
def build(
    paths: List[Path] = typer.Argument(..., help="Source files or directories to scan."),
    module_key: str = typer.Option(..., "--module-key", "-m", help="Scope key whose handlers are registered."),
    use_scope: bool = typer.Option(False, "--use-scope", help="Use each scope as routing prefix."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the module here instead of stdout."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Process declarations on a thread pool."),
    exclude: List[str] = typer.Option([], "--exclude", "-x", help="Skip modules whose name contains this."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every registration."),
) -> None:
    """Generate register_service() and list_routes() for one module key."""
    _configure_logging(verbose)
    try:
        module = BuildPass(max_workers=workers).run(
            paths, module_key, use_scope=use_scope, exclude_modules=set(exclude)
        )
    except RegistryError as exc:
        _fail(exc)

    text = module.render()
    if output is None:
        typer.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    err_console.print(f"[green]✓[/green] Wrote {output}")


@app.command()
def routes(
    paths: List[Path] = typer.Argument(..., help="Source files or directories to scan."),
    exclude: List[str] = typer.Option([], "--exclude", "-x", help="Skip modules whose name contains this."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every registration."),
) -> None:
    """Print the table of discovered routes."""
    _configure_logging(verbose)
    build_pass = BuildPass()
    try:
        manifest = build_pass.process(build_pass.scan(paths, exclude_modules=set(exclude)))
    except RegistryError as exc:
        _fail(exc)

    if not len(manifest):
        console.print("[yellow]No routes registered.[/yellow]")
        return
    list_routes = synthesize_list_routes(source=manifest, config=build_pass.config).compile()
    list_routes(console)
