from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookStatus(str, Enum):
    """Lending status of a book as stored by the book service."""
    AVAILABLE = "available"
    BORROWED = "borrowed"
    MAINTENANCE = "maintenance"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]


UNKNOWN_STATUS = "unknown"


class Book:
    """A single catalog record returned by the book service."""

    def __init__(self, id: int, title: str, author: str, isbn: str | None = None, genre: str | None = None,
                 pages: int | None = None, status: str | None = None, created_at: str | None = None,
                 # Estimated price attached by the backend, if any
                 price: str | None = None) -> None:
        self.id = id
        self.title = title
        self.author = author
        self.isbn = isbn
        self.genre = genre
        self.pages = pages
        self.status = status
        self.created_at = created_at
        self.price = price

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (#{self.id})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r}, status={self.status!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def display_status(self) -> str:
        return self.status or UNKNOWN_STATUS

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match on title, author and genre; plain substring on ISBN."""
        needle = term.lower()
        for value in (self.title, self.author, self.genre):
            if value and needle in value.lower():
                return True
        return bool(self.isbn) and term in self.isbn

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "genre": self.genre,
            "pages": self.pages,
            "status": self.status,
            "createdAt": self.created_at,
            "price": self.price,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        # The service speaks camelCase but older payloads used snake_case
        created_at = data.get("createdAt", data.get("created_at"))
        pages = data.get("pages")
        if isinstance(pages, str):
            pages = int(pages) if pages.strip().isdigit() else None

        return Book(
            id=int(data["id"]),
            title=data.get("title") or "",
            author=data.get("author") or "",
            isbn=data.get("isbn"),
            genre=data.get("genre"),
            pages=pages,
            status=data.get("status"),
            created_at=str(created_at) if created_at is not None else None,
            price=data.get("price"),
        )


def books_from_payload(payload: Any) -> list[Book]:
    """Convert a JSON list from the service into Book objects, skipping entries without an id."""
    if not isinstance(payload, list):
        return []
    return [Book.from_dict(item) for item in payload if isinstance(item, dict) and item.get("id") is not None]


def validate_status(status: str) -> str:
    value = getattr(status, "value", status)
    if value not in BookStatus.values():
        raise ValueError(f"Invalid status '{value}'. Use one of: {', '.join(BookStatus.values())}")
    return value


class BookCreate(BaseModel):
    """Payload for creating a book; title and author are required."""
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    isbn: str | None = None
    genre: str | None = None
    pages: int | None = Field(default=None, gt=0)

    @field_validator("title", "author", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("isbn", "genre", "pages", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class BookStats(BaseModel):
    """Counts shown in the dashboard header."""
    model_config = ConfigDict(populate_by_name=True)

    total_books: int = Field(default=0, alias="totalBooks")
    available_books: int = Field(default=0, alias="availableBooks")
    borrowed_books: int = Field(default=0, alias="borrowedBooks")
    maintenance_books: int = Field(default=0, alias="maintenanceBooks")

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @classmethod
    def from_books(cls, books: Iterable[Book]) -> "BookStats":
        books = list(books)
        return cls(
            total_books=len(books),
            available_books=sum(1 for b in books if b.status == BookStatus.AVAILABLE.value),
            borrowed_books=sum(1 for b in books if b.status == BookStatus.BORROWED.value),
            maintenance_books=sum(1 for b in books if b.status == BookStatus.MAINTENANCE.value),
        )

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)
