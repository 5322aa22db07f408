"""NameService — name dictionary CRUD and review of detected names."""

import csv
import io
from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from novelmate.errors import ConflictError
from novelmate.names.dictionary import NameDictionary
from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import (
    ChapterStatus,
    DetectedName,
    DetectedNameStatus,
    NameEntry,
    NameType,
)

logger = structlog.get_logger()

CSV_FIELDS = ["original_name", "translated_name", "type", "context"]


class NameResolution(BaseModel):
    """A reviewer's decision for one detected name."""

    model_config = ConfigDict(populate_by_name=True)

    detected_name_id: str = Field(alias="detectedNameId")
    action: str = Field(description="add or ignore")
    translated_name: Optional[str] = Field(default=None, alias="translatedName")
    type: Optional[str] = None


class ResolutionOutcome(BaseModel):
    """Per-item result of a resolution batch."""

    id: str
    success: bool
    action: Optional[str] = None
    message: Optional[str] = None


class ResolveNamesResult(BaseModel):
    """Result of a resolution batch for one chapter."""

    results: list[ResolutionOutcome]
    remaining_pending: int
    chapter_status: ChapterStatus


def _resolve_type(requested: Optional[str], detected: str) -> NameType:
    """Pick the dictionary type: explicit choice, else detected type, else character."""
    if requested and requested != "unknown":
        return NameType(requested)
    if detected in {t.value for t in NameType}:
        return NameType(detected)
    return NameType.CHARACTER


class NameService:
    """Manage a novel's name dictionary and the review of detected names."""

    def __init__(self, library: NovelLibrary) -> None:
        self._library = library

    def list_names(self, novel_id: str) -> list[NameEntry]:
        """Dictionary entries sorted by original name."""
        return sorted(self._library.list_names(novel_id), key=lambda e: e.original_name)

    def create_name(
        self,
        novel_id: str,
        original_name: str,
        translated_name: str,
        type: str = "character",
        context: Optional[str] = None,
    ) -> NameEntry:
        """Add a name; raises ConflictError if the original name exists."""
        self._library.get_novel(novel_id)
        return NameDictionary(self._library).insert(
            novel_id, original_name, translated_name, NameType(type), context
        )

    def update_name(
        self,
        novel_id: str,
        name_id: str,
        translated_name: Optional[str] = None,
        type: Optional[str] = None,
    ) -> NameEntry:
        """Change the translation or type of an existing name."""
        entry = self._library.get_name(novel_id, name_id)
        if translated_name:
            entry.translated_name = translated_name
        if type:
            entry.type = NameType(type)
        logger.info(
            "name_updated",
            novel_id=novel_id,
            original=entry.original_name,
            translated=entry.translated_name,
        )
        return self._library.save_name(entry)

    def delete_name(self, novel_id: str, name_id: str) -> None:
        """Remove a name from the dictionary."""
        self._library.delete_name(novel_id, name_id)

    def list_detected_names(
        self,
        novel_id: str,
        chapter_id: str,
        status: Optional[DetectedNameStatus] = DetectedNameStatus.PENDING,
    ) -> list[DetectedName]:
        """Detected names of a chapter (pending only by default)."""
        self._library.get_chapter(novel_id, chapter_id)
        return self._library.list_detected_names(novel_id, chapter_id=chapter_id, status=status)

    def resolve_names(
        self,
        novel_id: str,
        chapter_id: str,
        resolutions: list[NameResolution],
    ) -> ResolveNamesResult:
        """Apply reviewer decisions to detected names of a chapter.

        ``add`` inserts the name into the dictionary and marks the detected
        name resolved; ``ignore`` marks it ignored. Problems with one item
        (unknown ID, already reviewed, conflict, bad action) are reported in
        that item's outcome and do not stop the batch. When no pending names
        remain, a chapter under review returns to ``translated``.
        """
        self._library.get_chapter(novel_id, chapter_id)
        dictionary = NameDictionary(self._library)
        dictionary.load(novel_id)

        results = [
            self._resolve_one(novel_id, chapter_id, resolution, dictionary)
            for resolution in resolutions
        ]

        remaining = self._library.count_pending(novel_id, chapter_id)
        chapter = self._library.get_chapter(novel_id, chapter_id)
        if remaining == 0 and (
            chapter.pending_names or chapter.status == ChapterStatus.NEEDS_REVIEW
        ):
            chapter.pending_names = False
            if chapter.status == ChapterStatus.NEEDS_REVIEW:
                chapter.status = ChapterStatus.TRANSLATED
            chapter = self._library.save_chapter(novel_id, chapter)

        logger.info(
            "names_resolved",
            novel_id=novel_id,
            chapter_id=chapter_id,
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            remaining=remaining,
        )
        return ResolveNamesResult(
            results=results,
            remaining_pending=remaining,
            chapter_status=chapter.status,
        )

    def _resolve_one(
        self,
        novel_id: str,
        chapter_id: str,
        resolution: NameResolution,
        dictionary: NameDictionary,
    ) -> ResolutionOutcome:
        item_id = resolution.detected_name_id
        detected = self._library.get_detected_name(novel_id, item_id)
        if detected is None or detected.chapter_id != chapter_id:
            return ResolutionOutcome(id=item_id, success=False, message="Detected name not found")
        if detected.status != DetectedNameStatus.PENDING:
            return ResolutionOutcome(
                id=item_id,
                success=False,
                message=f"Detected name already {detected.status.value}",
            )

        if resolution.action == "add":
            translated_name = resolution.translated_name or detected.suggested_translation
            if not translated_name:
                return ResolutionOutcome(
                    id=item_id, success=False, message="translatedName is required"
                )
            try:
                name_type = _resolve_type(resolution.type, detected.type)
            except ValueError:
                return ResolutionOutcome(
                    id=item_id, success=False, message=f"Invalid name type: {resolution.type}"
                )
            try:
                dictionary.insert(
                    novel_id,
                    detected.original_text,
                    translated_name,
                    name_type,
                    detected.context,
                )
            except ConflictError as e:
                return ResolutionOutcome(id=item_id, success=False, message=str(e))
            detected.status = DetectedNameStatus.RESOLVED
            outcome = "added"
        elif resolution.action == "ignore":
            detected.status = DetectedNameStatus.IGNORED
            outcome = "ignored"
        else:
            return ResolutionOutcome(id=item_id, success=False, message="Invalid action")

        detected.resolved_at = datetime.now()
        self._library.save_detected_name(detected)
        return ResolutionOutcome(id=item_id, success=True, action=outcome)

    def export_csv(self, novel_id: str) -> str:
        """Export the dictionary as CSV text."""
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(CSV_FIELDS)
        for entry in self.list_names(novel_id):
            writer.writerow(
                [entry.original_name, entry.translated_name, entry.type.value, entry.context or ""]
            )
        return output.getvalue()

    def import_csv(self, novel_id: str, csv_text: str) -> dict[str, Any]:
        """Import names from CSV text; existing original names are skipped."""
        self._library.get_novel(novel_id)
        dictionary = NameDictionary(self._library)
        dictionary.load(novel_id)

        imported = 0
        skipped = 0
        for row in csv.DictReader(io.StringIO(csv_text)):
            original = (row.get("original_name") or "").strip()
            translated = (row.get("translated_name") or "").strip()
            if not original or not translated:
                skipped += 1
                continue
            try:
                name_type = NameType(row.get("type") or "character")
            except ValueError:
                name_type = NameType.OTHER
            try:
                dictionary.insert(
                    novel_id, original, translated, name_type, row.get("context") or None
                )
            except ConflictError:
                skipped += 1
                continue
            imported += 1

        logger.info("names_imported", novel_id=novel_id, imported=imported, skipped=skipped)
        return {"imported": imported, "skipped": skipped, "total": len(dictionary)}
