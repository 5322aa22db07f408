"""NovelService — business logic for novel and chapter CRUD.

Keeps route handlers and CLI commands thin; everything here can be tested
without HTTP.
"""

from typing import Any, Optional

from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import Chapter, ChapterStatus, Novel

NOVEL_FIELDS = (
    "title",
    "author",
    "source_language",
    "target_language",
    "description",
    "cover_image",
)


class NovelService:
    """Manage novels and their chapters in a library."""

    def __init__(self, library: NovelLibrary) -> None:
        self._library = library

    # -- novels ---------------------------------------------------------

    def list_novels(self) -> list[dict[str, Any]]:
        """List all novels with chapter status counts."""
        summaries: list[dict[str, Any]] = []
        for novel in self._library.list_novels():
            counts = {s: 0 for s in ChapterStatus}
            for chapter in novel.chapters:
                counts[chapter.status] += 1
            summaries.append(
                {
                    "id": novel.id,
                    "title": novel.title,
                    "author": novel.author,
                    "source_language": novel.source_language,
                    "target_language": novel.target_language,
                    "total_chapters": len(novel.chapters),
                    "pending_chapters": counts[ChapterStatus.PENDING],
                    "translated_chapters": counts[ChapterStatus.TRANSLATED],
                    "review_chapters": counts[ChapterStatus.NEEDS_REVIEW],
                    "completed_chapters": counts[ChapterStatus.COMPLETED],
                    "created_at": novel.created_at.isoformat(),
                }
            )
        return summaries

    def get_novel(self, novel_id: str) -> Novel:
        """Get a novel with its chapters."""
        return self._library.get_novel(novel_id)

    def create_novel(
        self,
        title: str,
        author: str = "",
        source_language: str = "ko",
        target_language: str = "en",
        description: str = "",
        cover_image: Optional[str] = None,
    ) -> Novel:
        """Create an empty novel."""
        novel = Novel(
            title=title,
            author=author,
            source_language=source_language,
            target_language=target_language,
            description=description,
            cover_image=cover_image,
        )
        return self._library.create_novel(novel)

    def update_novel(self, novel_id: str, **changes: Any) -> Novel:
        """Update novel metadata; ``None`` values are left unchanged."""
        novel = self._library.get_novel(novel_id)
        data = novel.model_dump()
        for field in NOVEL_FIELDS:
            if changes.get(field) is not None:
                data[field] = changes[field]
        return self._library.save_novel(Novel.model_validate(data))

    def delete_novel(self, novel_id: str) -> None:
        """Delete a novel with its chapters and names."""
        self._library.delete_novel(novel_id)

    # -- chapters -------------------------------------------------------

    def list_chapters(self, novel_id: str) -> list[Chapter]:
        """List chapters in chapter-number order."""
        return sorted(self._library.get_novel(novel_id).chapters, key=lambda c: c.number)

    def get_chapter(self, novel_id: str, chapter_id: str) -> Chapter:
        """Get a chapter of a novel."""
        return self._library.get_chapter(novel_id, chapter_id)

    def create_chapter(
        self, novel_id: str, number: int, title: str, source_text: str
    ) -> Chapter:
        """Add a pending chapter; raises ConflictError on a duplicate number."""
        chapter = Chapter(number=number, title=title, source_text=source_text)
        return self._library.add_chapter(novel_id, chapter)

    def update_chapter(
        self,
        novel_id: str,
        chapter_id: str,
        number: Optional[int] = None,
        title: Optional[str] = None,
        source_text: Optional[str] = None,
    ) -> Chapter:
        """Update a chapter.

        Changing the source text discards the stored translation and summary
        and puts the chapter back to ``pending``.
        """
        chapter = self._library.get_chapter(novel_id, chapter_id)
        if number is not None:
            chapter.number = number
        if title is not None:
            chapter.title = title
        if source_text is not None and source_text != chapter.source_text:
            chapter.source_text = source_text
            chapter.translation = None
            chapter.summary = None
            chapter.status = ChapterStatus.PENDING
        return self._library.save_chapter(novel_id, chapter)

    def delete_chapter(self, novel_id: str, chapter_id: str) -> None:
        """Delete a chapter."""
        self._library.delete_chapter(novel_id, chapter_id)

    def complete_chapter(self, novel_id: str, chapter_id: str) -> Chapter:
        """Mark a translated chapter with no pending names as completed."""
        chapter = self._library.get_chapter(novel_id, chapter_id)
        if chapter.status != ChapterStatus.TRANSLATED:
            raise ValueError(f"Chapter cannot be completed from status: {chapter.status.value}")
        if self._library.count_pending(novel_id, chapter_id):
            raise ValueError("Chapter still has detected names awaiting review")
        chapter.status = ChapterStatus.COMPLETED
        return self._library.save_chapter(novel_id, chapter)
