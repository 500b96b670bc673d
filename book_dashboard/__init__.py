"""Book Dashboard - Core Application Package

This package contains the dashboard client for the book-service backend:
- Book model and validation (book.py)
- Dashboard state and view synchronization (state.py, dashboard.py)
- Renderers for plain, JSON and rich output (views.py)
- CLI interface (cli.py)
- Static development server (dev_server.py)
"""
