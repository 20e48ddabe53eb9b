"""Middleware package for the D2 Stash Manager."""

from stash_manager.middleware.error_handler import setup_error_handlers

__all__ = [
    "setup_error_handlers",
]
