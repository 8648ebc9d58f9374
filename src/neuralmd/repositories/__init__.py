"""Repositories package."""

from neuralmd.repositories.base import BaseRepository
from neuralmd.repositories.notes import NoteRepository, note_repository

__all__ = [
    "BaseRepository",
    "NoteRepository",
    "note_repository",
]
