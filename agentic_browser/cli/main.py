"""Agentic Browser CLI - Main entry point for command-line interface."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Optional

import click
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from ..browser import BrowserSession, Page
from ..core.config import build_config
from ..core.errors import BrowserError
from ..core.logging import setup_logging

console = Console()


def _run_on_page(ctx: click.Context, url: str, action: Callable[[Page], Awaitable[Any]]) -> Any:
    """Open ``url`` in a fresh session, run ``action`` on the page, tear down."""

    async def _main() -> Any:
        async with BrowserSession(ctx.obj["config"]) as session:
            page = await session.new_page(url)
            return await action(page)

    try:
        return asyncio.run(_main())
    except BrowserError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/red] {e.message}")
        raise SystemExit(1) from e


@click.group()
@click.version_option(version="0.1.0", prog_name="agentic-browser")
@click.option("--headful", is_flag=True, help="Show the browser window")
@click.option("--no-stealth", is_flag=True, help="Disable anti-detection patches")
@click.option("--timeout", type=float, default=None, help="Wait budget in seconds")
@click.option("--proxy", help="Proxy server URL")
@click.option("--chrome-path", type=click.Path(), help="Custom browser binary")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.pass_context
def cli(
    ctx: click.Context,
    headful: bool,
    no_stealth: bool,
    timeout: Optional[float],
    proxy: Optional[str],
    chrome_path: Optional[str],
    verbose: bool,
):
    """Drive a browser tab and print what an agent would observe."""
    setup_logging("DEBUG" if verbose else "WARNING")

    overrides: dict[str, Any] = {}
    if headful:
        overrides["headless"] = False
    if no_stealth:
        overrides["stealth"] = False
    if timeout is not None:
        overrides["timeout"] = timeout
    if proxy:
        overrides["proxy"] = proxy
    if chrome_path:
        overrides["binary_path"] = chrome_path

    try:
        config = build_config(**overrides)
    except ValidationError as e:
        console.print(f"[red]✗ Invalid configuration:[/red]\n{e}")
        raise SystemExit(2) from e

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("url")
@click.pass_context
def tree(ctx: click.Context, url: str):
    """Print the accessibility tree of URL."""
    console.print(_run_on_page(ctx, url, lambda page: page.accessibility_tree()), markup=False)


@cli.command()
@click.argument("url")
@click.pass_context
def title(ctx: click.Context, url: str):
    """Print the document title of URL."""
    console.print(_run_on_page(ctx, url, lambda page: page.title()), markup=False)


@cli.command()
@click.argument("url")
@click.pass_context
def links(ctx: click.Context, url: str):
    """List every link on URL."""
    results = _run_on_page(ctx, url, lambda page: page.get_links())

    table = Table(title=f"Links ({len(results)})", box=box.ROUNDED)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Text", style="cyan")
    table.add_column("Href", style="green")
    for i, (text, href) in enumerate(results, start=1):
        table.add_row(str(i), text, href)
    console.print(table)


@cli.command()
@click.argument("url")
@click.pass_context
def fields(ctx: click.Context, url: str):
    """List the form fields on URL."""
    results = _run_on_page(ctx, url, lambda page: page.get_form_fields())

    table = Table(title=f"Form Fields ({len(results)})", box=box.ROUNDED)
    for column in ("Tag", "Type", "Name", "Id", "Label", "Placeholder", "Value"):
        table.add_column(column)
    for field in results:
        table.add_row(
            field.tag, field.type, field.name, field.id, field.label, field.placeholder, field.value
        )
    console.print(table)


@cli.command()
@click.argument("url")
@click.option("--output", "-o", type=click.Path(dir_okay=False), required=True, help="Output file")
@click.option("--full-page", is_flag=True, help="Capture the whole scrollable page")
@click.option("--jpeg-quality", type=click.IntRange(0, 100), default=None, help="Save JPEG at this quality")
@click.pass_context
def screenshot(
    ctx: click.Context,
    url: str,
    output: str,
    full_page: bool,
    jpeg_quality: Optional[int],
):
    """Capture a screenshot of URL to a file."""

    async def _capture(page: Page) -> bytes:
        if jpeg_quality is None:
            return await (page.screenshot_full_page() if full_page else page.screenshot())
        if full_page:
            return await page.screenshot_full_page_jpeg(jpeg_quality)
        return await page.screenshot_jpeg(jpeg_quality)

    data = _run_on_page(ctx, url, _capture)
    path = Path(output)
    try:
        path.write_bytes(data)
    except OSError as e:
        console.print(f"[red]✗ IoError:[/red] could not write {path}: {e}")
        raise SystemExit(1) from e

    console.print(f"[green]✓[/green] Saved {len(data)} bytes to [bold]{path}[/bold]")


def run():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    run()
