"""Lockfile generation and replay package."""

from .service import LockfileService

__all__ = ["LockfileService"]
