"""File-backed novel library.

Layout, one directory per novel under the library root::

    <root>/<novel_id>/novel.json            novel metadata + chapters
    <root>/<novel_id>/names.csv             name dictionary
    <root>/<novel_id>/detected_names.json   detected names awaiting review

All writes go through a single process-local lock so that check-then-write
sequences (unique original names, unique chapter numbers) are atomic.
"""

import csv
import io
import json
import re
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog

from novelmate.errors import ConflictError, NotFoundError
from novelmate.storage.models import (
    Chapter,
    DetectedName,
    DetectedNameStatus,
    NameEntry,
    Novel,
)

logger = structlog.get_logger()

NAME_FIELDS = [
    "id",
    "original_name",
    "translated_name",
    "type",
    "frequency",
    "first_detected",
    "context",
]

_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def _write_atomic(path: Path, content: str) -> None:
    """Write a file via a temporary sibling so readers never see partial data."""
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(content, encoding="utf-8")
    tmp_path.replace(path)


class NovelLibrary:
    """Persistence for novels, chapters, name dictionaries and detected names."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _novel_dir(self, novel_id: str) -> Path:
        """Get novel directory, raising NotFoundError if missing."""
        if not _ID_PATTERN.fullmatch(novel_id or ""):
            raise NotFoundError(f"Novel not found: {novel_id}")
        novel_dir = self.root / novel_id
        if not (novel_dir / "novel.json").exists():
            raise NotFoundError(f"Novel not found: {novel_id}")
        return novel_dir

    # ------------------------------------------------------------------
    # Novels
    # ------------------------------------------------------------------

    def list_novels(self) -> list[Novel]:
        """List all novels, newest first."""
        novels: list[Novel] = []
        if not self.root.exists():
            return novels
        for novel_dir in self.root.iterdir():
            novel_file = novel_dir / "novel.json"
            if novel_dir.is_dir() and novel_file.exists():
                novels.append(self._read_novel(novel_file))
        novels.sort(key=lambda n: n.created_at, reverse=True)
        return novels

    def get_novel(self, novel_id: str) -> Novel:
        """Load a novel with its chapters."""
        return self._read_novel(self._novel_dir(novel_id) / "novel.json")

    def create_novel(self, novel: Novel) -> Novel:
        """Persist a new novel."""
        with self._lock:
            novel_dir = self.root / novel.id
            if novel_dir.exists():
                raise ConflictError(f"Novel already exists: {novel.id}")
            novel_dir.mkdir(parents=True)
            self._write_novel(novel_dir, novel)
        logger.info("novel_created", novel_id=novel.id, title=novel.title)
        return novel

    def save_novel(self, novel: Novel) -> Novel:
        """Overwrite an existing novel record."""
        with self._lock:
            self._write_novel(self._novel_dir(novel.id), novel)
        return novel

    def delete_novel(self, novel_id: str) -> None:
        """Delete a novel and everything stored for it."""
        with self._lock:
            shutil.rmtree(self._novel_dir(novel_id))
        logger.info("novel_deleted", novel_id=novel_id)

    def _read_novel(self, novel_file: Path) -> Novel:
        with open(novel_file, "r", encoding="utf-8") as f:
            return Novel.model_validate(json.load(f))

    def _write_novel(self, novel_dir: Path, novel: Novel) -> None:
        novel.updated_at = datetime.now()
        _write_atomic(
            novel_dir / "novel.json",
            json.dumps(novel.model_dump(mode="json"), ensure_ascii=False, indent=2),
        )

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------

    def get_chapter(self, novel_id: str, chapter_id: str) -> Chapter:
        """Load a single chapter."""
        chapter = self.get_novel(novel_id).get_chapter(chapter_id)
        if chapter is None:
            raise NotFoundError(f"Chapter not found: {chapter_id}")
        return chapter

    def add_chapter(self, novel_id: str, chapter: Chapter) -> Chapter:
        """Append a chapter; chapter numbers are unique per novel."""
        with self._lock:
            novel = self.get_novel(novel_id)
            if novel.get_chapter_by_number(chapter.number) is not None:
                raise ConflictError(
                    f"Chapter {chapter.number} already exists for this novel"
                )
            novel.chapters.append(chapter)
            novel.chapters.sort(key=lambda c: c.number)
            self._write_novel(self._novel_dir(novel_id), novel)
        return chapter

    def save_chapter(self, novel_id: str, chapter: Chapter) -> Chapter:
        """Replace a stored chapter (matched by ID)."""
        with self._lock:
            novel = self.get_novel(novel_id)
            for idx, existing in enumerate(novel.chapters):
                if existing.id == chapter.id:
                    break
            else:
                raise NotFoundError(f"Chapter not found: {chapter.id}")

            clash = novel.get_chapter_by_number(chapter.number)
            if clash is not None and clash.id != chapter.id:
                raise ConflictError(
                    f"Chapter {chapter.number} already exists for this novel"
                )

            chapter.updated_at = datetime.now()
            novel.chapters[idx] = chapter
            novel.chapters.sort(key=lambda c: c.number)
            self._write_novel(self._novel_dir(novel_id), novel)
        return chapter

    def delete_chapter(self, novel_id: str, chapter_id: str) -> None:
        """Delete a chapter and its detected names."""
        with self._lock:
            novel = self.get_novel(novel_id)
            remaining = [c for c in novel.chapters if c.id != chapter_id]
            if len(remaining) == len(novel.chapters):
                raise NotFoundError(f"Chapter not found: {chapter_id}")
            novel.chapters = remaining
            self._write_novel(self._novel_dir(novel_id), novel)

            detected = [
                d for d in self._read_detected(novel_id) if d.chapter_id != chapter_id
            ]
            self._write_detected(novel_id, detected)

    # ------------------------------------------------------------------
    # Name dictionary
    # ------------------------------------------------------------------

    def list_names(self, novel_id: str) -> list[NameEntry]:
        """Load every name entry for a novel."""
        names_path = self._novel_dir(novel_id) / "names.csv"
        if not names_path.exists():
            return []

        entries: list[NameEntry] = []
        with open(names_path, "r", encoding="utf-8", newline="") as f:
            for row in csv.DictReader(f):
                entries.append(
                    NameEntry(
                        id=row["id"],
                        novel_id=novel_id,
                        original_name=row["original_name"],
                        translated_name=row["translated_name"],
                        type=row.get("type") or "character",
                        frequency=int(row.get("frequency") or 1),
                        first_detected=row.get("first_detected") or datetime.now(),
                        context=row.get("context") or None,
                    )
                )
        return entries

    def get_name(self, novel_id: str, name_id: str) -> NameEntry:
        """Load a single name entry by ID."""
        for entry in self.list_names(novel_id):
            if entry.id == name_id:
                return entry
        raise NotFoundError(f"Name mapping not found: {name_id}")

    def insert_name(self, entry: NameEntry) -> NameEntry:
        """Insert a new name entry.

        Raises:
            ConflictError: ``(novel_id, original_name)`` already exists. The
                stored dictionary is left unchanged.
        """
        with self._lock:
            entries = self.list_names(entry.novel_id)
            if any(e.original_name == entry.original_name for e in entries):
                raise ConflictError(
                    f'Name mapping for "{entry.original_name}" already exists'
                )
            entries.append(entry)
            self._write_names(entry.novel_id, entries)
        return entry

    def save_name(self, entry: NameEntry) -> NameEntry:
        """Replace an existing name entry (matched by ID)."""
        with self._lock:
            entries = self.list_names(entry.novel_id)
            for idx, existing in enumerate(entries):
                if existing.id == entry.id:
                    break
            else:
                raise NotFoundError(f"Name mapping not found: {entry.id}")
            if any(
                e.original_name == entry.original_name and e.id != entry.id
                for e in entries
            ):
                raise ConflictError(
                    f'Name mapping for "{entry.original_name}" already exists'
                )
            entries[idx] = entry
            self._write_names(entry.novel_id, entries)
        return entry

    def delete_name(self, novel_id: str, name_id: str) -> None:
        """Delete a name entry by ID."""
        with self._lock:
            entries = self.list_names(novel_id)
            remaining = [e for e in entries if e.id != name_id]
            if len(remaining) == len(entries):
                raise NotFoundError(f"Name mapping not found: {name_id}")
            self._write_names(novel_id, remaining)

    def _write_names(self, novel_id: str, entries: list[NameEntry]) -> None:
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=NAME_FIELDS)
        writer.writeheader()
        for entry in entries:
            writer.writerow(
                {
                    "id": entry.id,
                    "original_name": entry.original_name,
                    "translated_name": entry.translated_name,
                    "type": entry.type.value,
                    "frequency": entry.frequency,
                    "first_detected": entry.first_detected.isoformat(),
                    "context": entry.context or "",
                }
            )
        _write_atomic(self._novel_dir(novel_id) / "names.csv", output.getvalue())

    # ------------------------------------------------------------------
    # Detected names
    # ------------------------------------------------------------------

    def add_detected_names(self, novel_id: str, records: list[DetectedName]) -> None:
        """Append detected-name records for a novel."""
        if not records:
            return
        with self._lock:
            existing = self._read_detected(novel_id)
            existing.extend(records)
            self._write_detected(novel_id, existing)

    def list_detected_names(
        self,
        novel_id: str,
        chapter_id: Optional[str] = None,
        status: Optional[DetectedNameStatus] = None,
    ) -> list[DetectedName]:
        """List detected names, optionally filtered by chapter and status."""
        records = self._read_detected(novel_id)
        if chapter_id is not None:
            records = [r for r in records if r.chapter_id == chapter_id]
        if status is not None:
            records = [r for r in records if r.status == status]
        return records

    def get_detected_name(self, novel_id: str, detected_id: str) -> Optional[DetectedName]:
        """Get a detected name by ID, or None."""
        for record in self._read_detected(novel_id):
            if record.id == detected_id:
                return record
        return None

    def save_detected_name(self, record: DetectedName) -> DetectedName:
        """Replace a stored detected name (matched by ID)."""
        with self._lock:
            records = self._read_detected(record.novel_id)
            for idx, existing in enumerate(records):
                if existing.id == record.id:
                    records[idx] = record
                    break
            else:
                raise NotFoundError(f"Detected name not found: {record.id}")
            self._write_detected(record.novel_id, records)
        return record

    def count_pending(self, novel_id: str, chapter_id: str) -> int:
        """Count detected names of a chapter still awaiting review."""
        return len(
            self.list_detected_names(
                novel_id, chapter_id=chapter_id, status=DetectedNameStatus.PENDING
            )
        )

    def _read_detected(self, novel_id: str) -> list[DetectedName]:
        path = self._novel_dir(novel_id) / "detected_names.json"
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as f:
            return [DetectedName.model_validate(item) for item in json.load(f)]

    def _write_detected(self, novel_id: str, records: list[DetectedName]) -> None:
        _write_atomic(
            self._novel_dir(novel_id) / "detected_names.json",
            json.dumps(
                [r.model_dump(mode="json") for r in records], ensure_ascii=False, indent=2
            ),
        )
