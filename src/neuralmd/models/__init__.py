"""Models package - re-exports all models for convenient imports."""

from neuralmd.models.base import Base, TimestampMixin
from neuralmd.models.note import TITLE_MAX_LENGTH, Note, NoteSource

__all__ = [
    "Base",
    "TimestampMixin",
    "Note",
    "NoteSource",
    "TITLE_MAX_LENGTH",
]
