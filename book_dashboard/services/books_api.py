import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from pydantic import ValidationError

from book_dashboard.book import Book, BookCreate, BookStats, books_from_payload, validate_status
from book_dashboard.services.http_client import HttpClient, RequestError
from book_dashboard.state import DashboardState, Notification, NotificationLevel

logger = logging.getLogger(__name__)

Notifier = Callable[[Notification], None]


def _ignore(notification: Notification) -> None:
    return None


class BooksApi:
    """Book service operations backed by the dashboard's local cache.

    Reads fall back to the cache in `state.books` when the service cannot be
    used. Writes never fabricate local records: they report the failure
    through `notify` and re-raise, leaving the cache as it was.
    """

    def __init__(self, client: HttpClient, state: DashboardState, notify: Optional[Notifier] = None):
        self.client = client
        self.state = state
        self.notify = notify or _ignore

    # ------------------------- Reads ------------------------- #
    async def list_books(self, strict: bool = False) -> List[Book]:
        """Fetch every book and replace the cache.

        With strict=True a failure is re-raised instead of answering from the cache.
        """
        try:
            payload = await self.client.get("")
        except RequestError as e:
            logger.error(f"Error fetching books: {e}")
            if strict:
                raise
            self.notify(Notification(f"Failed to load books: {e}", NotificationLevel.ERROR))
            return list(self.state.books)

        self.state.books = books_from_payload(payload)
        return list(self.state.books)

    async def books_by_status(self, status: str) -> List[Book]:
        status = validate_status(status)
        try:
            payload = await self.client.get(f"?status={quote(status, safe='')}")
        except RequestError as e:
            logger.warning(f"Error fetching books by status, using local cache: {e}")
            return self.state.filter_by_status(status)
        return books_from_payload(payload)

    async def search_books(self, term: str) -> List[Book]:
        if not term:
            return list(self.state.books)
        try:
            payload = await self.client.get(f"/search?q={quote(term, safe='')}")
        except RequestError as e:
            logger.warning(f"Error searching books, using local search: {e}")
            return self.state.search(term)
        return books_from_payload(payload)

    async def get_book(self, book_id: int) -> Optional[Book]:
        book_id = int(book_id)
        try:
            payload = await self.client.get(f"/{book_id}")
        except RequestError as e:
            logger.warning(f"Error fetching book {book_id}, using local cache: {e}")
            return self.state.find(book_id)
        if isinstance(payload, dict) and payload.get("id") is not None:
            return Book.from_dict(payload)
        return self.state.find(book_id)

    async def get_stats(self) -> BookStats:
        try:
            payload = await self.client.get("/stats")
            if not isinstance(payload, dict):
                raise RequestError(f"Unexpected stats payload: {payload!r}")
            return BookStats.model_validate(payload)
        except (RequestError, ValidationError) as e:
            logger.warning(f"Error fetching stats, computing locally: {e}")
            return BookStats.from_books(self.state.books)

    # ------------------------- Writes ------------------------- #
    async def create_book(self, data: BookCreate) -> Book:
        try:
            payload = await self.client.post("", data.model_dump())
        except RequestError as e:
            self._write_failed("add book", e)
            raise

        book = Book.from_dict(payload) if isinstance(payload, dict) and payload.get("id") is not None else None
        if book is None:
            error = RequestError(f"Unexpected response for created book: {payload!r}")
            self._write_failed("add book", error)
            raise error
        self.state.books.append(book)
        return book

    async def update_book(self, book_id: int, data: BookCreate) -> Book:
        book_id = int(book_id)
        body: Dict[str, Any] = data.model_dump()
        existing = self.state.find(book_id)
        if existing is not None:
            body["status"] = existing.status
        try:
            payload = await self.client.put(f"/{book_id}", body)
        except RequestError as e:
            self._write_failed("update book", e)
            raise

        if isinstance(payload, dict) and payload.get("id") is not None:
            book = Book.from_dict(payload)
        else:
            book = Book(id=book_id, status=body.get("status"), **data.model_dump())
        index = self.state.index_of(book_id)
        if index != -1:
            self.state.books[index] = book
        return book

    async def delete_book(self, book_id: int) -> Book:
        book_id = int(book_id)
        try:
            await self.client.delete(f"/{book_id}")
        except RequestError as e:
            self._write_failed("delete book", e)
            raise

        index = self.state.index_of(book_id)
        if index != -1:
            return self.state.books.pop(index)
        return Book(id=book_id, title="", author="")

    async def update_status(self, book_id: int, status: str) -> Optional[Book]:
        book_id = int(book_id)
        status = validate_status(status)
        try:
            payload = await self.client.put(f"/{book_id}/status", {"status": status})
        except RequestError as e:
            self._write_failed("update status", e)
            raise

        index = self.state.index_of(book_id)
        if index == -1:
            return Book.from_dict(payload) if isinstance(payload, dict) and payload.get("id") is not None else None

        book = self.state.books[index]
        if isinstance(payload, dict) and payload.get("id") is not None and int(payload["id"]) == book_id:
            book = Book.from_dict({**book.to_dict(), **payload})
        book.status = status
        self.state.books[index] = book
        return book

    def _write_failed(self, action: str, error: Exception) -> None:
        logger.error(f"Error trying to {action}: {error}")
        self.notify(Notification(f"Failed to {action}: {error}", NotificationLevel.ERROR))
