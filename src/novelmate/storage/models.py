"""Persistent records for novels, chapters, name entries and detected names."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

SourceLanguage = Literal["ko", "ja"]
TargetLanguage = Literal["en"]


def new_id() -> str:
    """Short random identifier for stored records."""
    return uuid.uuid4().hex[:12]


class ChapterStatus(str, Enum):
    """Chapter translation status."""

    PENDING = "pending"
    TRANSLATED = "translated"
    NEEDS_REVIEW = "needs_review"
    COMPLETED = "completed"


class NameType(str, Enum):
    """Kinds of proper names kept in the dictionary."""

    CHARACTER = "character"
    LOCATION = "location"
    ORGANIZATION = "organization"
    ITEM = "item"
    CONCEPT = "concept"
    OTHER = "other"


# Detected candidates may also be untyped (heuristic matches)
DETECTED_NAME_TYPES = [t.value for t in NameType] + ["unknown"]


class DetectedNameStatus(str, Enum):
    """Review lifecycle of a detected name."""

    PENDING = "pending"
    RESOLVED = "resolved"
    IGNORED = "ignored"


class ChapterTranslation(BaseModel):
    """Stored translation output for a chapter."""

    raw: str = Field(description="Unmodified model output")
    processed: str = Field(description="Model output after dictionary substitution")
    created_at: datetime = Field(default_factory=datetime.now)


class Chapter(BaseModel):
    """A chapter of a novel."""

    id: str = Field(default_factory=new_id)
    number: int = Field(description="Chapter number (unique per novel)")
    title: str = Field(default="")
    source_text: str = Field(default="", description="Original Korean/Japanese text")
    translation: Optional[ChapterTranslation] = None
    summary: Optional[str] = Field(default=None, description="Summary used as later context")
    status: ChapterStatus = Field(default=ChapterStatus.PENDING)
    pending_names: bool = Field(default=False, description="Detected names await review")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class Novel(BaseModel):
    """Novel metadata and its chapters."""

    id: str = Field(default_factory=new_id)
    title: str
    author: str = Field(default="")
    source_language: SourceLanguage = Field(default="ko")
    target_language: TargetLanguage = Field(default="en")
    description: str = Field(default="")
    cover_image: Optional[str] = Field(default=None, description="Cover image URL")
    chapters: list[Chapter] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def get_chapter(self, chapter_id: str) -> Optional[Chapter]:
        """Get chapter by ID."""
        for chapter in self.chapters:
            if chapter.id == chapter_id:
                return chapter
        return None

    def get_chapter_by_number(self, number: int) -> Optional[Chapter]:
        """Get chapter by chapter number."""
        for chapter in self.chapters:
            if chapter.number == number:
                return chapter
        return None


class NameEntry(BaseModel):
    """A canonical name translation in a novel's dictionary."""

    id: str = Field(default_factory=new_id)
    novel_id: str
    original_name: str = Field(description="Source-language name (unique per novel)")
    translated_name: str = Field(description="Canonical target-language name")
    type: NameType = Field(default=NameType.CHARACTER)
    frequency: int = Field(default=1)
    first_detected: datetime = Field(default_factory=datetime.now)
    context: Optional[str] = None


class DetectedName(BaseModel):
    """A candidate proper noun awaiting human review."""

    id: str = Field(default_factory=new_id)
    novel_id: str
    chapter_id: str
    original_text: str
    suggested_translation: str = Field(default="")
    type: str = Field(default="unknown")
    context: Optional[str] = None
    status: DetectedNameStatus = Field(default=DetectedNameStatus.PENDING)
    created_at: datetime = Field(default_factory=datetime.now)
    resolved_at: Optional[datetime] = None
