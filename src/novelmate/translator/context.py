"""Cross-chapter context for translation prompts."""

from typing import Optional

import structlog
from pydantic import BaseModel, Field

from novelmate.config import ContextConfig, get_config
from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import NameEntry

logger = structlog.get_logger()


class TranslationContext(BaseModel):
    """Summary block of recent chapters plus the full name dictionary."""

    summary: str = Field(default="", description="Recent chapter summaries, oldest first")
    key_terms: list[NameEntry] = Field(default_factory=list)

    def glossary_lines(self) -> list[str]:
        """Glossary formatted one ``original → translated`` pair per line."""
        return [f"{t.original_name} → {t.translated_name}" for t in self.key_terms]


class ContextAssembler:
    """Build a fresh ``TranslationContext`` for every translation call."""

    def __init__(self, library: NovelLibrary, config: Optional[ContextConfig] = None) -> None:
        self.library = library
        self.config = config or get_config().context

    def assemble(self, novel_id: str, exclude_chapter_id: Optional[str] = None) -> TranslationContext:
        """Collect the latest chapter summaries and the current dictionary.

        The ``max_summaries`` highest-numbered chapters (other than
        ``exclude_chapter_id``) that have a summary are rendered in ascending
        chapter order as ``Chapter N: <summary>`` blocks.
        """
        novel = self.library.get_novel(novel_id)
        summarized = [
            c
            for c in novel.chapters
            if c.id != exclude_chapter_id and c.summary
        ]
        summarized.sort(key=lambda c: c.number, reverse=True)
        recent = sorted(summarized[: self.config.max_summaries], key=lambda c: c.number)

        summary = "\n\n".join(f"Chapter {c.number}: {c.summary}" for c in recent)
        key_terms = self.library.list_names(novel_id)

        logger.debug(
            "context_assembled",
            novel_id=novel_id,
            summaries=len(recent),
            key_terms=len(key_terms),
        )
        return TranslationContext(summary=summary, key_terms=key_terms)
