"""Shared utilities: structured logging, the exception hierarchy, JSON span scanning."""
