"""Persistence for novels, chapters and name dictionaries."""

from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import (
    Chapter,
    ChapterStatus,
    ChapterTranslation,
    DetectedName,
    DetectedNameStatus,
    NameEntry,
    NameType,
    Novel,
)

__all__ = [
    "NovelLibrary",
    "Novel",
    "Chapter",
    "ChapterStatus",
    "ChapterTranslation",
    "NameEntry",
    "NameType",
    "DetectedName",
    "DetectedNameStatus",
]
