"""Novel and chapter CRUD routes."""

from typing import Any, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from novelmate.services.novel_service import NovelService
from novelmate.storage.models import Chapter, Novel, SourceLanguage, TargetLanguage

router = APIRouter(prefix="/api/v1/novels", tags=["novels"])

# Set by server.py at startup
_service: Optional[NovelService] = None


def set_novel_service(service: NovelService) -> None:
    """Set the novel service instance."""
    global _service
    _service = service


def _svc() -> NovelService:
    if _service is None:
        raise RuntimeError("Novel service not configured")
    return _service


class NovelCreateRequest(BaseModel):
    """Request body for creating a novel."""

    title: str = Field(min_length=1)
    author: str = ""
    source_language: SourceLanguage = "ko"
    target_language: TargetLanguage = "en"
    description: str = ""
    cover_image: Optional[str] = None


class NovelUpdateRequest(BaseModel):
    """Request body for updating a novel; omitted fields are unchanged."""

    title: Optional[str] = None
    author: Optional[str] = None
    source_language: Optional[SourceLanguage] = None
    target_language: Optional[TargetLanguage] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None


class ChapterCreateRequest(BaseModel):
    """Request body for adding a chapter."""

    number: int = Field(ge=0)
    title: str = ""
    source_text: str = Field(min_length=1)


class ChapterUpdateRequest(BaseModel):
    """Request body for updating a chapter; omitted fields are unchanged."""

    number: Optional[int] = Field(default=None, ge=0)
    title: Optional[str] = None
    source_text: Optional[str] = None


@router.get("")
async def list_novels() -> list[dict[str, Any]]:
    """List all novels with chapter status counts."""
    return _svc().list_novels()


@router.post("", status_code=201, response_model=Novel)
async def create_novel(body: NovelCreateRequest) -> Novel:
    """Create a novel."""
    return _svc().create_novel(**body.model_dump())


@router.get("/{novel_id}", response_model=Novel)
async def get_novel(novel_id: str) -> Novel:
    """Get a novel with its chapters."""
    return _svc().get_novel(novel_id)


@router.put("/{novel_id}", response_model=Novel)
async def update_novel(novel_id: str, body: NovelUpdateRequest) -> Novel:
    """Update novel metadata."""
    return _svc().update_novel(novel_id, **body.model_dump())


@router.delete("/{novel_id}")
async def delete_novel(novel_id: str) -> dict[str, str]:
    """Delete a novel and everything stored for it."""
    _svc().delete_novel(novel_id)
    return {"status": "ok"}


@router.get("/{novel_id}/chapters", response_model=list[Chapter])
async def list_chapters(novel_id: str) -> list[Chapter]:
    """List chapters of a novel in chapter order."""
    return _svc().list_chapters(novel_id)


@router.post("/{novel_id}/chapters", status_code=201, response_model=Chapter)
async def create_chapter(novel_id: str, body: ChapterCreateRequest) -> Chapter:
    """Add a chapter to a novel."""
    return _svc().create_chapter(novel_id, body.number, body.title, body.source_text)


@router.get("/{novel_id}/chapters/{chapter_id}", response_model=Chapter)
async def get_chapter(novel_id: str, chapter_id: str) -> Chapter:
    """Get a chapter."""
    return _svc().get_chapter(novel_id, chapter_id)


@router.put("/{novel_id}/chapters/{chapter_id}", response_model=Chapter)
async def update_chapter(novel_id: str, chapter_id: str, body: ChapterUpdateRequest) -> Chapter:
    """Update a chapter; new source text resets its translation."""
    return _svc().update_chapter(
        novel_id,
        chapter_id,
        number=body.number,
        title=body.title,
        source_text=body.source_text,
    )


@router.delete("/{novel_id}/chapters/{chapter_id}")
async def delete_chapter(novel_id: str, chapter_id: str) -> dict[str, str]:
    """Delete a chapter."""
    _svc().delete_chapter(novel_id, chapter_id)
    return {"status": "ok"}


@router.post("/{novel_id}/chapters/{chapter_id}/complete", response_model=Chapter)
async def complete_chapter(novel_id: str, chapter_id: str) -> Chapter:
    """Mark a reviewed, translated chapter as completed."""
    return _svc().complete_chapter(novel_id, chapter_id)
