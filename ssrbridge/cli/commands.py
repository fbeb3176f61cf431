"""CLI commands for ssrbridge.

``worker`` runs the render worker on stdio; ``check``, ``render`` and ``send``
are operator tools for trying a bundle in-process or through a worker.
"""

import asyncio
import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from ssrbridge import __version__
from ssrbridge.client import EmbeddedRenderer, RenderWorkerClient
from ssrbridge.config import ClientConfig, load_client_config
from ssrbridge.protocol import PAGE_REQUIRED_MESSAGE, response_from_error, response_from_page, response_payload
from ssrbridge.render import RenderError, RenderFailed
from ssrbridge.utils.exceptions import SsrBridgeError
from ssrbridge.worker.server import run_worker

app = typer.Typer(
    name="ssrbridge",
    help="ssrbridge - server-side rendering over a worker subprocess",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"ssrbridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """ssrbridge - server-side rendering bridge."""
    pass


def _parse_page(raw: str) -> dict[str, Any]:
    try:
        page = json.loads(raw)
    except json.JSONDecodeError as exc:
        console.print(f"[red]--page is not valid JSON: {exc}[/red]")
        raise typer.Exit(2) from exc
    if not isinstance(page, dict):
        _fail(RenderFailed(PAGE_REQUIRED_MESSAGE))
    return page


def _print_response(payload: dict[str, Any]) -> None:
    console.print_json(json.dumps(payload, ensure_ascii=False), highlight=False)


def _fail(err: RenderError) -> NoReturn:
    _print_response(response_payload(response_from_error(err)))
    raise typer.Exit(1)


@app.command()
def worker(
    bundle: str = typer.Argument(..., metavar="BUNDLE", help="Path to the rendering bundle module"),
):
    """Serve render requests for BUNDLE over stdin/stdout."""
    raise typer.Exit(run_worker(bundle))


@app.command()
def check(
    bundle: str = typer.Argument(..., metavar="BUNDLE", help="Path to the rendering bundle module"),
    production: bool = typer.Option(False, "--production", help="Use the production cache policy"),
):
    """Load BUNDLE in-process and report its render export."""
    renderer = EmbeddedRenderer(production=production)
    try:
        handle = renderer.load_module(bundle)
    except RenderError as err:
        console.print(f"[red]✗[/red] {err.kind}: {err.message}")
        raise typer.Exit(1) from err
    console.print(f"[green]✓[/green] {handle.path}")
    console.print(f"  export: [cyan]{handle.export}[/cyan]")
    console.print(f"  module: [dim]{handle.module_name}[/dim]")


@app.command()
def render(
    bundle: str = typer.Argument(..., metavar="BUNDLE", help="Path to the rendering bundle module"),
    page: str = typer.Option(..., "--page", "-p", help="Page object as JSON"),
):
    """Render one page in-process and print the response."""
    page_obj = _parse_page(page)
    renderer = EmbeddedRenderer()
    try:
        rendered = asyncio.run(renderer.render(bundle, page_obj))
    except RenderError as err:
        _fail(err)
    _print_response(response_payload(response_from_page(rendered)))


@app.command()
def send(
    page: str = typer.Option(..., "--page", "-p", help="Page object as JSON"),
    config_path: str = typer.Option(None, "--config", "-c", help="Client config JSON file"),
    bundle: str = typer.Option(None, "--bundle", "-b", help="Bundle path (when no config file is given)"),
    production: bool = typer.Option(False, "--production", help="Run the worker in production mode"),
    timeout: float = typer.Option(None, "--timeout", help="Seconds to wait for the response"),
):
    """Render one page through a spawned worker and print the response."""
    if config_path:
        try:
            config = load_client_config(config_path)
        except (OSError, ValueError) as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(2) from exc
    elif bundle:
        config = ClientConfig(bundle_path=bundle, production=production)
    else:
        console.print("[red]Either --config or --bundle is required[/red]")
        raise typer.Exit(2)
    page_obj = _parse_page(page)
    with RenderWorkerClient(config=config) as client:
        try:
            rendered = client.send(page_obj, timeout=timeout)
        except RenderError as err:
            _fail(err)
        except SsrBridgeError as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            tail = client.stderr_tail
            if tail:
                console.print("[dim]" + escape("\n".join(tail[-10:])) + "[/dim]")
            raise typer.Exit(1) from exc
    _print_response(response_payload(response_from_page(rendered)))
