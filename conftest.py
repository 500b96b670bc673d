import json

import httpx
import pytest

from book_dashboard.config import Settings
from book_dashboard.services.http_client import HttpClient
from book_dashboard.state import DashboardState
from book_dashboard.book import Book
from book_dashboard.views import DashboardView

BASE_URL = "http://books.test/api/books"


@pytest.fixture
def test_settings(tmp_path):
    return Settings(api_base_url=BASE_URL, request_timeout=0.5, static_dir=str(tmp_path), output_mode="plain")


@pytest.fixture
def book_payloads():
    return [
        {"id": 1, "title": "Dune", "author": "Frank Herbert", "isbn": "9780441013593", "genre": "Science Fiction",
         "pages": 412, "status": "available", "createdAt": "2024-03-01T10:00:00"},
        {"id": 2, "title": "Emma", "author": "Jane Austen", "isbn": "9780141439587", "genre": "Classic",
         "pages": 474, "status": "borrowed"},
        {"id": 5, "title": "Neuromancer", "author": "William Gibson", "isbn": "9780441569595", "genre": "Cyberpunk",
         "status": "available"},
        {"id": 7, "title": "The Hobbit", "author": "J.R.R. Tolkien", "genre": "Fantasy", "status": "maintenance"},
    ]


@pytest.fixture
def cached_state(book_payloads):
    books = [Book.from_dict(p) for p in book_payloads]
    return DashboardState(books=books)


def json_response(data, status_code=200):
    return httpx.Response(status_code, content=json.dumps(data), headers={"content-type": "application/json"})


@pytest.fixture
def make_client(test_settings):
    """Build an HttpClient whose requests are answered by `handler(request)`."""
    def factory(handler):
        return HttpClient(test_settings, transport=httpx.MockTransport(handler))
    return factory


def offline_handler(request):
    raise httpx.ConnectError("connection refused", request=request)


class RecordingView(DashboardView):
    """Captures render calls instead of drawing them."""

    def __init__(self, service_url=BASE_URL):
        super().__init__(service_url)
        self.renders = []
        self.book_renders = []
        self.stats = []
        self.connections = []
        self.notifications = []
        self.loading = []
        self.reverts = []

    def render_books(self, books, search_term=""):
        self.renders.append(([b.id for b in books], search_term))

    def render_book(self, book):
        self.book_renders.append(book)

    def render_stats(self, stats):
        self.stats.append(stats)

    def show_connection(self, status):
        self.connections.append(status)

    def notify(self, notification):
        self.notifications.append(notification)

    def show_loading(self, show):
        self.loading.append(show)

    def revert_status(self, book_id, status):
        self.reverts.append((book_id, status))


@pytest.fixture
def view():
    return RecordingView()


class FakeService:
    """Minimal in-memory stand-in for the book service."""

    def __init__(self, books):
        self.books = {b["id"]: dict(b) for b in books}
        self.next_id = 100
        self.fail_writes = False
        self.calls = []

    def stats(self):
        statuses = [b.get("status") for b in self.books.values()]
        return {
            "totalBooks": len(statuses),
            "availableBooks": statuses.count("available"),
            "borrowedBooks": statuses.count("borrowed"),
            "maintenanceBooks": statuses.count("maintenance"),
        }

    def __call__(self, request):
        path = request.url.path.removeprefix("/api/books")
        self.calls.append((request.method, path))
        if request.method != "GET" and self.fail_writes:
            return json_response({"message": "Service unavailable"}, status_code=503)

        if request.method == "GET" and path == "":
            status = request.url.params.get("status")
            return json_response([b for b in self.books.values() if status is None or b["status"] == status])
        if request.method == "GET" and path == "/stats":
            return json_response(self.stats())
        if request.method == "GET" and path == "/search":
            term = request.url.params["q"].lower()
            return json_response([b for b in self.books.values() if term in b["title"].lower()])
        if request.method == "POST" and path == "":
            body = json.loads(request.content)
            book = {**body, "id": self.next_id, "status": "available"}
            self.books[self.next_id] = book
            self.next_id += 1
            return json_response(book, status_code=201)
        if request.method == "DELETE":
            self.books.pop(int(path.strip("/")))
            return httpx.Response(200)
        if request.method == "PUT" and path.endswith("/status"):
            book_id = int(path.split("/")[1])
            self.books[book_id]["status"] = json.loads(request.content)["status"]
            return json_response(self.books[book_id])
        if request.method == "PUT":
            book_id = int(path.strip("/"))
            self.books[book_id] = {**json.loads(request.content), "id": book_id}
            return json_response(self.books[book_id])
        return httpx.Response(404)


@pytest.fixture
def service(book_payloads):
    return FakeService(book_payloads)
