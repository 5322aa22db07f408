"""Translation routes — translate a chapter, detect names in a text."""

from typing import Any, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from novelmate.names.models import NameCandidate
from novelmate.storage.models import SourceLanguage
from novelmate.translator.engine import TranslationOrchestrator

router = APIRouter(prefix="/api/v1/novels/{novel_id}", tags=["translation"])

# Set by server.py at startup
_orchestrator: Optional[TranslationOrchestrator] = None


def set_orchestrator(orchestrator: TranslationOrchestrator) -> None:
    """Set the translation orchestrator instance."""
    global _orchestrator
    _orchestrator = orchestrator


def _orch() -> TranslationOrchestrator:
    if _orchestrator is None:
        raise RuntimeError("Translation orchestrator not configured")
    return _orchestrator


class TranslateRequest(BaseModel):
    """Optional body for translating a chapter; defaults to the stored text."""

    source_text: Optional[str] = None


class DetectNamesRequest(BaseModel):
    """Request body for standalone name detection."""

    text: str = Field(min_length=1)
    language: Optional[SourceLanguage] = None


@router.post("/chapters/{chapter_id}/translate")
async def translate_chapter(
    novel_id: str, chapter_id: str, body: Optional[TranslateRequest] = None
) -> dict[str, Any]:
    """Translate a chapter and store the result.

    Returns 502 when the model fails; the chapter is left untouched then.
    """
    source_text = body.source_text if body else None
    result = await _orch().translate_chapter(novel_id, chapter_id, source_text)
    return {
        "translation": result.processed_translation,
        "raw_translation": result.raw_translation,
        "new_names": [n.model_dump(by_alias=True) for n in result.new_names],
        "needs_review": result.needs_review,
        "status": result.status.value,
        "summary_generated": result.summary_generated,
    }


@router.post("/detect-names", response_model=list[NameCandidate])
async def detect_names(novel_id: str, body: DetectNamesRequest) -> list[NameCandidate]:
    """Detect names in a text that the novel's dictionary does not know yet."""
    return await _orch().detect_names(body.text, novel_id, body.language)
