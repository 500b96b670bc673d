import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from book_dashboard.book import Book, BookCreate, BookStats, validate_status
from book_dashboard.services.books_api import BooksApi
from book_dashboard.services.http_client import HttpClient, RequestError
from book_dashboard.state import ConnectionStatus, DashboardState, Notification, NotificationLevel
from book_dashboard.views import DashboardView

logger = logging.getLogger(__name__)


def _validation_message(error: ValidationError) -> str:
    fields = sorted({str(err["loc"][0]) for err in error.errors() if err.get("loc")})
    if {"title", "author"} & set(fields):
        return "Title and Author are required!"
    return f"Invalid book data: {', '.join(fields)}"


class Dashboard:
    """Keeps the book service, the local cache and the view in step.

    Every mutating action runs the same sequence: call the service, refresh
    the stats, re-render the current view (search results when a term is
    active, the whole cache otherwise) and report success. A failed write
    leaves whatever is on screen untouched.
    """

    def __init__(self, client: HttpClient, view: DashboardView, state: Optional[DashboardState] = None):
        self.state = state or DashboardState()
        self.view = view
        self.api = BooksApi(client, self.state, notify=self.notify)

    # ------------------------- Helpers ------------------------- #
    def notify(self, notification: Notification) -> None:
        self.state.last_notification = notification
        self.view.notify(notification)

    def _info(self, message: str) -> None:
        self.notify(Notification(message, NotificationLevel.INFO))

    def _success(self, message: str) -> None:
        self.notify(Notification(message, NotificationLevel.SUCCESS))

    def _error(self, message: str) -> None:
        self.notify(Notification(message, NotificationLevel.ERROR))

    def _set_connection(self, status: ConnectionStatus) -> None:
        self.state.connection = status
        self.view.show_connection(status)

    @contextmanager
    def _loading(self):
        self.view.show_loading(True)
        try:
            yield
        finally:
            self.view.show_loading(False)

    def _render(self, books: List[Book]) -> None:
        self.state.visible = list(books)
        self.view.render_books(self.state.visible, self.state.search_term)

    async def update_stats(self) -> BookStats:
        self.state.stats = await self.api.get_stats()
        return self.state.stats

    async def _rerender_current(self) -> None:
        if self.state.search_term:
            self._render(await self.api.search_books(self.state.search_term))
        else:
            self._render(self.state.books)

    # ------------------------- Loading ------------------------- #
    async def load(self, render: bool = True, announce: bool = True) -> bool:
        """Connect to the service and populate the cache. Returns True when connected."""
        self._set_connection(ConnectionStatus.CONNECTING)
        try:
            with self._loading():
                await self.api.list_books(strict=True)
            await self.update_stats()
        except RequestError as e:
            logger.error(f"Dashboard load failed: {e}")
            self._set_connection(ConnectionStatus.DISCONNECTED)
            self._error("Failed to connect to server. Please check if the book service is running.")
            return False

        self._set_connection(ConnectionStatus.CONNECTED)
        if render:
            self._render(self.state.books)
        if announce:
            self._success("Dashboard loaded successfully!")
        return True

    async def refresh(self) -> None:
        self.state.search_term = ""
        with self._loading():
            await self.api.list_books()
        await self.update_stats()
        self._render(self.state.books)
        self._success("Books refreshed successfully!")

    # ------------------------- Views ------------------------- #
    async def search(self, term: str) -> List[Book]:
        term = (term or "").strip()
        self.state.search_term = term
        results = await self.api.search_books(term)
        self._render(results)
        if term:
            self._info(f'Found {len(results)} book(s) matching "{term}"')
        return results

    def show_books(self) -> None:
        """Render the cache as it stands, without contacting the service."""
        self._render(self.state.books)

    def clear_search(self) -> None:
        self.state.search_term = ""
        self._render(self.state.books)
        self._info("Search cleared")

    async def filter_by_status(self, status: str) -> List[Book]:
        try:
            status = validate_status(status)
        except ValueError as e:
            self._error(str(e))
            return []
        results = await self.api.books_by_status(status)
        self._render(results)
        return results

    async def show_book(self, book_id: int) -> Optional[Book]:
        book = await self.api.get_book(book_id)
        self.view.render_book(book)
        return book

    async def show_stats(self) -> BookStats:
        stats = await self.update_stats()
        self.view.render_stats(stats)
        return stats

    # ------------------------- Mutations ------------------------- #
    async def add_book(self, form: Dict[str, Any]) -> Optional[Book]:
        try:
            data = BookCreate.model_validate(form)
        except ValidationError as e:
            self._error(_validation_message(e))
            return None

        try:
            with self._loading():
                book = await self.api.create_book(data)
        except RequestError:
            return None

        await self.update_stats()
        await self._rerender_current()
        self._success(f'"{book.title}" added successfully!')
        return book

    async def edit_book(self, book_id: int, form: Dict[str, Any]) -> Optional[Book]:
        try:
            data = BookCreate.model_validate(form)
        except ValidationError as e:
            self._error(_validation_message(e))
            return None

        try:
            with self._loading():
                book = await self.api.update_book(book_id, data)
        except RequestError:
            return None

        await self.update_stats()
        await self._rerender_current()
        self._success(f'"{book.title}" updated successfully!')
        return book

    async def delete_book(self, book_id: int, confirm: Optional[Callable[[int], bool]] = None) -> bool:
        if confirm is not None and not confirm(book_id):
            return False

        try:
            with self._loading():
                await self.api.delete_book(book_id)
        except RequestError:
            return False

        await self.update_stats()
        await self._rerender_current()
        self._success("Book deleted successfully!")
        return True

    async def change_status(self, book_id: int, status: str) -> bool:
        book_id = int(book_id)
        try:
            status = validate_status(status)
        except ValueError as e:
            self._error(str(e))
            self._revert(book_id)
            return False

        try:
            with self._loading():
                await self.api.update_status(book_id, status)
        except RequestError:
            self._revert(book_id)
            return False

        await self.update_stats()
        await self._rerender_current()
        self._success(f"Book status changed to {status}")
        return True

    def _revert(self, book_id: int) -> None:
        book = self.state.find(book_id)
        if book is not None:
            self.view.revert_status(book_id, book.status)
