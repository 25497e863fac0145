"""SQLModel database models for sandfs."""

from sandfs.models.entries import Entry, EntryBase

__all__ = [
    "Entry",
    "EntryBase",
]
