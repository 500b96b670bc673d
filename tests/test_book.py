import pytest
from pydantic import ValidationError

from book_dashboard.book import Book, BookCreate, BookStats, BookStatus, books_from_payload, validate_status
from book_dashboard.state import DashboardState


def test_from_dict_reads_service_fields():
    book = Book.from_dict({"id": "4", "title": "Dune", "author": "Frank Herbert", "pages": "412",
                           "createdAt": "2024-01-02T03:04:05", "price": "$9.99"})
    assert book.id == 4
    assert book.pages == 412
    assert book.created_at == "2024-01-02T03:04:05"
    assert book.price == "$9.99"
    assert book.display_status == "unknown"


def test_to_dict_uses_service_field_names():
    data = Book(id=1, title="Dune", author="Frank Herbert", created_at="2024-01-01").to_dict()
    assert data["createdAt"] == "2024-01-01"
    assert "created_at" not in data


def test_books_from_payload_skips_invalid_entries():
    books = books_from_payload([{"id": 1, "title": "A"}, {"title": "no id"}, "junk"])
    assert [b.id for b in books] == [1]
    assert books_from_payload({"unexpected": "shape"}) == []


def test_book_create_strips_and_blanks():
    data = BookCreate.model_validate({"title": "  Dune ", "author": "Frank Herbert", "isbn": " ", "pages": ""})
    assert data.title == "Dune"
    assert data.isbn is None
    assert data.pages is None


@pytest.mark.parametrize("form", [
    {"title": "", "author": "Someone"},
    {"title": "Dune", "author": "   "},
    {"author": "Someone"},
    {"title": "Dune", "author": "Someone", "pages": 0},
])
def test_book_create_rejects_invalid(form):
    with pytest.raises(ValidationError):
        BookCreate.model_validate(form)


def test_stats_treat_missing_counts_as_zero():
    stats = BookStats.model_validate({"totalBooks": 3, "borrowedBooks": None})
    assert stats.total_books == 3
    assert stats.borrowed_books == 0
    assert stats.available_books == 0


def test_validate_status():
    assert validate_status("borrowed") == "borrowed"
    assert validate_status(BookStatus.MAINTENANCE) == "maintenance"
    with pytest.raises(ValueError, match="Invalid status"):
        validate_status("lost")


def test_state_search_and_filter(cached_state):
    assert cached_state.search("") == cached_state.books
    assert [b.id for b in cached_state.search("DUNE")] == [1]
    for status in BookStatus.values():
        subset = cached_state.filter_by_status(status)
        assert subset == [b for b in cached_state.books if b.status == status]


def test_isbn_match_is_plain_substring():
    state = DashboardState(books=[Book(id=1, title="T", author="A", isbn="123456789X")])
    assert [b.id for b in state.search("6789X")] == [1]
    assert state.search("6789x") == []
