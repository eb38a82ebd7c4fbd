"""Shared helpers: logging setup and time utilities."""
