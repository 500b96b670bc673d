import asyncio
import logging
import os
import subprocess
import sys
import webbrowser
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from book_dashboard.book import BookStatus
from book_dashboard.config import Settings, settings
from book_dashboard.dashboard import Dashboard
from book_dashboard.services.http_client import HttpClient
from book_dashboard.views import RichView, get_view

APP_NAME = "Book Dashboard"

console = Console()
logger = logging.getLogger(__name__)


def _open_client(config: Settings) -> HttpClient:
    """Build the HTTP client for one CLI invocation."""
    return HttpClient(config)


def _config(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else settings


def _run(ctx: typer.Context, action: Callable[[Dashboard], Awaitable[Any]]) -> Any:
    """Connect to the service, load the cache quietly and run one dashboard action."""
    config = _config(ctx)

    async def runner():
        async with _open_client(config) as client:
            dashboard = Dashboard(client, get_view(config.output_mode, service_url=config.api_base_url))
            await dashboard.load(render=False, announce=False)
            return await action(dashboard)

    return asyncio.run(runner())


def _confirm_delete(book_id: int) -> bool:
    return Confirm.ask(f"🗑️ Are you sure you want to delete book {book_id}?", default=False)


# --- Typer CLI application ---
app = typer.Typer(help="Dashboard for the book-service backend")


@app.callback()
def _global_options(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Book service URL, e.g. http://localhost:8080/api/books"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Request timeout in seconds"),
):
    """Global options for the CLI (output mode, service location)."""
    logging.basicConfig(level=settings.logging_level, format="%(asctime)s - %(levelname)s - %(message)s")

    overrides: Dict[str, Any] = {}
    if output:
        overrides["output_mode"] = output
    if base_url:
        overrides["api_base_url"] = base_url
    if timeout:
        overrides["request_timeout"] = timeout
    ctx.obj = replace(settings, **overrides)


@app.command("list")
def cli_list(
    ctx: typer.Context,
    status: Optional[BookStatus] = typer.Option(None, "--status", "-s", help="Only show books with this status"),
):
    """List all books, optionally filtered by status."""
    async def action(dashboard: Dashboard):
        if status is not None:
            await dashboard.filter_by_status(status.value)
        else:
            dashboard.show_books()

    _run(ctx, action)


@app.command("search")
def cli_search(ctx: typer.Context, term: str = typer.Argument(..., help="Text to look for in title, author, genre or ISBN")):
    """Search books."""
    _run(ctx, lambda dashboard: dashboard.search(term))


@app.command("show")
def cli_show(ctx: typer.Context, book_id: int = typer.Argument(..., help="Book id")):
    """Show the details of one book."""
    _run(ctx, lambda dashboard: dashboard.show_book(book_id))


@app.command("stats")
def cli_stats(ctx: typer.Context):
    """Show book counts per status."""
    _run(ctx, lambda dashboard: dashboard.show_stats())


@app.command("add")
def cli_add(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Book author"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="ISBN"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="Genre"),
    pages: Optional[int] = typer.Option(None, "--pages", "-p", help="Number of pages"),
):
    """Add a new book."""
    form = {"title": title, "author": author, "isbn": isbn, "genre": genre, "pages": pages}
    _run(ctx, lambda dashboard: dashboard.add_book(form))


@app.command("edit")
def cli_edit(
    ctx: typer.Context,
    book_id: int = typer.Argument(..., help="Book id"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g"),
    pages: Optional[int] = typer.Option(None, "--pages", "-p"),
):
    """Change the details of a book; omitted fields keep their current value."""
    changes = {"title": title, "author": author, "isbn": isbn, "genre": genre, "pages": pages}

    async def action(dashboard: Dashboard):
        existing = dashboard.state.find(book_id)
        form = {key: getattr(existing, key) for key in changes} if existing else {}
        form.update({key: value for key, value in changes.items() if value is not None})
        await dashboard.edit_book(book_id, form)

    _run(ctx, action)


@app.command("delete")
def cli_delete(
    ctx: typer.Context,
    book_id: int = typer.Argument(..., help="Book id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a book."""
    confirm = None if yes else _confirm_delete
    _run(ctx, lambda dashboard: dashboard.delete_book(book_id, confirm=confirm))


@app.command("status")
def cli_status(
    ctx: typer.Context,
    book_id: int = typer.Argument(..., help="Book id"),
    status: BookStatus = typer.Argument(..., help="New status"),
):
    """Change the lending status of a book."""
    _run(ctx, lambda dashboard: dashboard.change_status(book_id, status.value))


@app.command("serve")
def cli_serve(
    ctx: typer.Context,
    port: Optional[int] = typer.Option(None, "--port", help="Port (defaults to $PORT or 3000)"),
    timeout: int = typer.Option(0, "--run-for", help="Seconds to run before exiting (0 = no limit)"),
    open_browser: bool = typer.Option(True, "--open/--no-open", help="Open the dashboard in a browser"),
):
    """Start the static development server with Uvicorn."""
    config = _config(ctx)
    host = config.dev_server_host
    port = int(port or config.dev_server_port)
    url = f"http://{host}:{port}/"
    print(f"Starting dev server on {url}")
    if open_browser:
        try:
            webbrowser.open(url)
        except webbrowser.Error:
            logger.warning("Could not open a web browser automatically.")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "book_dashboard.dev_server:app",
        "--host", host,
        "--port", str(port),
    ]
    env = {**os.environ, "PORT": str(port)}
    try:
        if timeout and timeout > 0:
            proc = subprocess.Popen(args, env=env, start_new_session=(os.name != "nt"))
            try:
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                proc.terminate()
                try:
                    proc.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    proc.kill()
        else:
            subprocess.run(args, env=env)
    except FileNotFoundError:
        print("Error: could not start uvicorn. Make sure it is installed in this environment.")


@app.command("dashboard")
def cli_dashboard(ctx: typer.Context):
    """Interactive dashboard menu."""
    config = _config(ctx)
    view = RichView(config.api_base_url, console=console)

    async def runner():
        async with _open_client(config) as client:
            dashboard = Dashboard(client, view)
            await dashboard.load()
            await run_menu(dashboard)

    asyncio.run(runner())


def render_menu(dashboard: Dashboard) -> None:
    menu_items = [
        ("1", "Refresh books", "🔄"),
        ("2", "Search books", "🔎"),
        ("3", "Clear search", "🧹"),
        ("4", "Add a book", "➕"),
        ("5", "Delete a book", "🗑️"),
        ("6", "Change book status", "📋"),
        ("7", "Show statistics", "📊"),
        ("0", "Exit", "🚪"),
    ]

    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold cyan", width=4)
    table.add_column(justify="left", style="white")
    for key, label, icon in menu_items:
        table.add_row(f"[reverse]{key}[/]", f"{icon} {label}")

    stats = dashboard.state.stats
    subtitle = (
        f"{dashboard.state.connection.value} | total {stats.total_books} | available {stats.available_books}"
        f" | borrowed {stats.borrowed_books} | maintenance {stats.maintenance_books}"
    )
    console.print(Panel(table, title=APP_NAME, subtitle=subtitle, border_style="cyan", box=box.HEAVY, padding=(1, 2)))


async def _ask(prompt, *args, **kwargs):
    """Run a blocking rich prompt in a worker thread so the event loop stays free."""
    return await asyncio.to_thread(prompt.ask, *args, **kwargs)


async def run_menu(dashboard: Dashboard) -> None:
    """Simple interactive menu driving the dashboard."""
    while True:
        render_menu(dashboard)
        choice = await _ask(Prompt, "Choose an option", choices=["1", "2", "3", "4", "5", "6", "7", "0"], default="1")

        if choice == "1":
            await dashboard.refresh()
        elif choice == "2":
            await dashboard.search(await _ask(Prompt, "Search term", default=""))
        elif choice == "3":
            dashboard.clear_search()
        elif choice == "4":
            form = {}
            for key in ("title", "author", "isbn", "genre", "pages"):
                form[key] = await _ask(Prompt, key.capitalize() if key != "isbn" else "ISBN", default="")
            await dashboard.add_book(form)
        elif choice == "5":
            book_id = await _ask(IntPrompt, "Book id")
            if await asyncio.to_thread(_confirm_delete, book_id):
                await dashboard.delete_book(book_id)
        elif choice == "6":
            book_id = await _ask(IntPrompt, "Book id")
            status = await _ask(Prompt, "New status", choices=BookStatus.values())
            await dashboard.change_status(book_id, status)
        elif choice == "7":
            await dashboard.show_stats()
        elif choice == "0":
            console.print("[green]Goodbye![/]")
            break
        print()  # blank line between actions


def main() -> None:
    app()


if __name__ == "__main__":
    main()
