"""Book Dashboard - Services Package

This package contains the modules that talk to the book-service backend:
- HTTP client abstraction with timeout handling
- Book API operations with local cache fallback
"""
