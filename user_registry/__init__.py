"""Core utilities for the user registry service."""

from __future__ import annotations

from .store import RecordStore, resolve_store_path

__all__ = ["RecordStore", "resolve_store_path"]
