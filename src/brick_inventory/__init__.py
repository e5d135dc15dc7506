"""brick-inventory core library.

This package provides the acquisition layer for a brick collection tracker:
BrickLink inventory pages are fetched, converted to Markdown, and parsed
into typed inventory records; thumbnails are served through a bounded,
two-tier fetch cache.

Repo rules:
- Records returned to callers are immutable value data.
- Nothing here persists inventories; that is the caller's job.
"""

from __future__ import annotations

from .hierarchy import completed_units, desired_child_quantity

__all__ = ["__version__", "completed_units", "desired_child_quantity"]

__version__ = "0.1.0"
