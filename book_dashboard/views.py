import json
import os
import sys
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from book_dashboard.book import Book, BookStats
from book_dashboard.state import ConnectionStatus, Notification, NotificationLevel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"
OUTPUT_MODES = ("plain", "json", "rich")


def get_output_mode() -> str:
    mode = os.environ.get(OUTPUT_MODE_ENV, "plain").lower()
    return mode if mode in OUTPUT_MODES else "plain"


def empty_message(search_term: str, service_url: str) -> List[str]:
    lines = ["No books found"]
    if search_term:
        lines.append("Try a different search term")
    lines.append(f"Make sure the book service is running on {service_url}")
    return lines


def book_details(book: Book) -> List[str]:
    details = [f"Author: {book.author or 'Unknown Author'}", f"Genre: {book.genre or 'Uncategorized'}"]
    if book.isbn:
        details.append(f"ISBN: {book.isbn}")
    if book.pages:
        details.append(f"{book.pages} pages")
    if book.created_at:
        details.append(f"Added: {book.created_at[:10]}")
    if book.price:
        details.append(f"Price: {book.price}")
    return details


class DashboardView:
    """Rendering interface used by the dashboard.

    Implementations receive plain data (books, search term, stats) and decide
    how to draw it; nothing here talks to the book service.
    """

    def __init__(self, service_url: str = ""):
        self.service_url = service_url

    def render_books(self, books: List[Book], search_term: str = "") -> None:
        raise NotImplementedError

    def render_book(self, book: Optional[Book]) -> None:
        raise NotImplementedError

    def render_stats(self, stats: BookStats) -> None:
        raise NotImplementedError

    def show_connection(self, status: ConnectionStatus) -> None:
        pass

    def notify(self, notification: Notification) -> None:
        raise NotImplementedError

    def show_loading(self, show: bool) -> None:
        pass

    def revert_status(self, book_id: int, status: Optional[str]) -> None:
        pass


class PlainView(DashboardView):
    """Line-oriented output, stable enough for scripts and tests."""

    def render_books(self, books: List[Book], search_term: str = "") -> None:
        if not books:
            for line in empty_message(search_term, self.service_url):
                print(line)
            return
        for b in books:
            print(f"{b.id} - {b.title or 'Untitled'} by {b.author or 'Unknown Author'} [{b.display_status}]")

    def render_book(self, book: Optional[Book]) -> None:
        if book is None:
            print("Book not found.")
            return
        print(f"#{book.id} {book.title or 'Untitled'} [{book.display_status}]")
        for line in book_details(book):
            print(f"  {line}")

    def render_stats(self, stats: BookStats) -> None:
        print(f"Total Books: {stats.total_books}")
        print(f"Available: {stats.available_books}")
        print(f"Borrowed: {stats.borrowed_books}")
        print(f"Maintenance: {stats.maintenance_books}")

    def notify(self, notification: Notification) -> None:
        prefix = "Error: " if notification.level == NotificationLevel.ERROR else ""
        print(f"{prefix}{notification.message}")

    def revert_status(self, book_id: int, status: Optional[str]) -> None:
        print(f"Book {book_id} status remains {status or 'unknown'}")


class JsonView(DashboardView):
    """JSON documents on stdout; notifications go to stderr."""

    def render_books(self, books: List[Book], search_term: str = "") -> None:
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))

    def render_book(self, book: Optional[Book]) -> None:
        print(json.dumps(book.to_dict() if book else None, ensure_ascii=False))

    def render_stats(self, stats: BookStats) -> None:
        print(json.dumps(stats.to_dict(), ensure_ascii=False))

    def notify(self, notification: Notification) -> None:
        payload = {"level": notification.level.value, "message": notification.message}
        print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)


STATUS_STYLES: Dict[str, str] = {
    "available": "green",
    "borrowed": "yellow",
    "maintenance": "magenta",
}

LEVEL_STYLES: Dict[NotificationLevel, str] = {
    NotificationLevel.INFO: "blue",
    NotificationLevel.SUCCESS: "green",
    NotificationLevel.ERROR: "bold red",
}

CONNECTION_LABELS: Dict[ConnectionStatus, tuple] = {
    ConnectionStatus.CONNECTED: ("● Connected", "green"),
    ConnectionStatus.CONNECTING: ("● Connecting...", "yellow"),
    ConnectionStatus.DISCONNECTED: ("● Disconnected", "red"),
}


class RichView(DashboardView):
    """Rich tables and panels. Book fields are wrapped in Text so markup in titles is shown verbatim."""

    def __init__(self, service_url: str = "", console: Optional[Console] = None):
        super().__init__(service_url)
        self.console = console or Console()
        self._status = None

    def render_books(self, books: List[Book], search_term: str = "") -> None:
        if not books:
            body = Text("\n".join(empty_message(search_term, self.service_url)), style="yellow")
            self.console.print(Panel.fit(body, title="📚 Books", border_style="yellow"))
            return

        title = f"🔎 Results for '{search_term}'" if search_term else "📚 Books"
        table = Table(title=Text(title), show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Details", style="white")
        table.add_column("Status", no_wrap=True)
        for b in books:
            table.add_row(
                Text(str(b.id)),
                Text(b.title or "Untitled", style="bold"),
                Text("\n".join(book_details(b))),
                Text(b.display_status, style=STATUS_STYLES.get(b.display_status, "dim")),
            )
        self.console.print(table)
        self.console.print(Text(f"📊 Showing {len(books)} book(s)", style="dim"))

    def render_book(self, book: Optional[Book]) -> None:
        if book is None:
            self.console.print(Text("Book not found.", style="yellow"))
            return
        body = Text("\n".join(book_details(book)))
        body.append(f"\nStatus: {book.display_status}", style=STATUS_STYLES.get(book.display_status, "dim"))
        self.console.print(Panel.fit(body, title=Text(book.title or "Untitled"), border_style="green"))

    def render_stats(self, stats: BookStats) -> None:
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold")
        grid.add_column(justify="right")
        grid.add_row("Total Books", str(stats.total_books))
        grid.add_row("Available", str(stats.available_books))
        grid.add_row("Borrowed", str(stats.borrowed_books))
        grid.add_row("Maintenance", str(stats.maintenance_books))
        self.console.print(Panel.fit(grid, title="📊 Stats", border_style="blue"))

    def show_connection(self, status: ConnectionStatus) -> None:
        label, style = CONNECTION_LABELS.get(status, CONNECTION_LABELS[ConnectionStatus.DISCONNECTED])
        self.console.print(Text(label, style=style))

    def notify(self, notification: Notification) -> None:
        self.console.print(Text(notification.message, style=LEVEL_STYLES.get(notification.level, "white")))

    def show_loading(self, show: bool) -> None:
        if show and self._status is None:
            self._status = self.console.status("[bold green]Loading...")
            self._status.start()
        elif not show and self._status is not None:
            self._status.stop()
            self._status = None

    def revert_status(self, book_id: int, status: Optional[str]) -> None:
        self.console.print(Text(f"Book {book_id} status remains {status or 'unknown'}", style="dim"))


def get_view(mode: Optional[str] = None, service_url: str = "", console: Optional[Console] = None) -> DashboardView:
    mode = (mode or get_output_mode()).lower()
    if mode == "json":
        return JsonView(service_url)
    if mode == "rich":
        return RichView(service_url, console=console)
    return PlainView(service_url)
