from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from book_dashboard.book import Book, BookStats


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notification:
    message: str
    level: NotificationLevel = NotificationLevel.INFO


@dataclass
class DashboardState:
    """Everything the dashboard knows between user actions.

    `books` mirrors the last successful full fetch from the service and is the
    source for every offline fallback. `visible` is what was rendered last,
    which differs from `books` while a search or status filter is active.
    """
    books: list[Book] = field(default_factory=list)
    visible: list[Book] = field(default_factory=list)
    search_term: str = ""
    stats: BookStats = field(default_factory=BookStats)
    connection: ConnectionStatus = ConnectionStatus.DISCONNECTED
    last_notification: Optional[Notification] = None

    def find(self, book_id: int) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def index_of(self, book_id: int) -> int:
        for i, book in enumerate(self.books):
            if book.id == book_id:
                return i
        return -1

    def filter_by_status(self, status: str) -> list[Book]:
        return [book for book in self.books if book.status == status]

    def search(self, term: str) -> list[Book]:
        if not term:
            return list(self.books)
        return [book for book in self.books if book.matches(term)]
