"""Chapter translation: context, name detection, translation and name enforcement."""

from datetime import datetime
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from novelmate.config import AppConfig, get_config
from novelmate.errors import NotFoundError, SummarizationFailure, TranslationFailure
from novelmate.names.applier import apply_dictionary
from novelmate.names.detection import LANGUAGE_NAMES, NameDetectionService
from novelmate.names.dictionary import NameDictionary
from novelmate.names.models import NameCandidate
from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import (
    ChapterStatus,
    ChapterTranslation,
    DetectedName,
    DetectedNameStatus,
)
from novelmate.translator.context import ContextAssembler, TranslationContext
from novelmate.translator.llm import CapabilityResult, Capabilities, TextCapability

logger = structlog.get_logger()


class ChapterTranslationResult(BaseModel):
    """Outcome of translating one chapter."""

    raw_translation: str = Field(description="Unmodified model output")
    processed_translation: str = Field(description="Output after dictionary substitution")
    new_names: list[NameCandidate] = Field(default_factory=list)
    status: ChapterStatus = Field(default=ChapterStatus.TRANSLATED)
    summary_generated: bool = False

    @property
    def needs_review(self) -> bool:
        return bool(self.new_names)


TRANSLATION_PROMPT = """<context>
{summary}

Key terms and names used in previous chapters:
{glossary}
</context>

You are translating a {source_language} novel to {target_language}.
Please translate the following chapter naturally, maintaining the original tone, style, and meaning.

Important guidelines:
1. Use exactly the translations listed under key terms for every name that appears in them
2. Preserve other character names as they appear in the source text, romanized consistently
3. Maintain honorifics (like -san, -nim) with {target_language} notation
4. Keep cultural references intact, with brief explanations in [square brackets] only if necessary
5. Preserve paragraph breaks
6. Translate dialogue naturally, the way a native {target_language} speaker would express it
7. Return only the translation, without notes or commentary

Chapter to translate:
{text}"""

SUMMARY_PROMPT = """The following is a translated chapter from a novel.
Please provide a concise summary (max 200 words) that captures the key plot points,
character developments, and important events. This summary will be used to provide
context for translating future chapters.

Chapter:
{text}"""


def build_translation_prompt(
    text: str,
    context: TranslationContext,
    source_language: str,
    target_language: str = "en",
) -> str:
    """Embed context summary, glossary and style instructions around the chapter."""
    glossary = "\n".join(context.glossary_lines()) or "(none yet)"
    return TRANSLATION_PROMPT.format(
        summary=context.summary or "(no previous chapter summaries)",
        glossary=glossary,
        source_language=LANGUAGE_NAMES.get(source_language, source_language),
        target_language=LANGUAGE_NAMES.get(target_language, target_language),
        text=text,
    )


async def _invoke(capability: TextCapability, prompt: str) -> CapabilityResult:
    """Call a capability, turning an unexpected exception into a failure result."""
    try:
        return await capability(prompt)
    except Exception as e:
        return CapabilityResult.failure(str(e) or e.__class__.__name__)


class TranslationOrchestrator:
    """Sequence the name/context pipeline around the model capabilities.

    Steps for one chapter: assemble context, detect new names, build the
    prompt, translate, enforce the dictionary on the output, summarize if the
    chapter has no summary yet, then persist. Nothing is written when the
    translation itself fails.
    """

    def __init__(
        self,
        library: NovelLibrary,
        capabilities: Capabilities,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.library = library
        self.capabilities = capabilities
        self.config = config or get_config()
        self.assembler = ContextAssembler(library, self.config.context)
        self.detector = NameDetectionService(
            library, capabilities.extract, self.config.detection
        )

    async def detect_names(
        self, text: str, novel_id: str, language: Optional[str] = None
    ) -> list[NameCandidate]:
        """Detect names not yet in the novel's dictionary."""
        if language is None:
            language = self.library.get_novel(novel_id).source_language
        return await self.detector.detect_names(text, novel_id, language)

    async def translate_chapter(
        self,
        novel_id: str,
        chapter_id: str,
        source_text: Optional[str] = None,
    ) -> ChapterTranslationResult:
        """Translate a chapter and store the result.

        Args:
            novel_id: Owning novel
            chapter_id: Chapter to translate
            source_text: Text to translate; the stored source text if None

        Returns:
            Raw and processed translation plus names awaiting review

        Raises:
            NotFoundError: Unknown novel or chapter
            ValueError: No source text to translate
            TranslationFailure: The translation capability failed
        """
        novel = self.library.get_novel(novel_id)
        chapter = novel.get_chapter(chapter_id)
        if chapter is None:
            raise NotFoundError(f"Chapter not found: {chapter_id}")

        text = chapter.source_text if source_text is None else source_text
        if not text or not text.strip():
            raise ValueError("Chapter has no source text to translate")

        log = logger.bind(novel_id=novel_id, chapter_id=chapter_id, chapter=chapter.number)
        log.info("chapter_translation_started", chars=len(text))

        context = self.assembler.assemble(novel_id, exclude_chapter_id=chapter_id)
        dictionary = NameDictionary(self.library)
        new_names = await self.detector.detect_names(
            text, novel_id, novel.source_language, dictionary=dictionary
        )

        prompt = build_translation_prompt(
            text, context, novel.source_language, novel.target_language
        )
        result = await _invoke(self.capabilities.translate, prompt)
        if not result.ok:
            log.error("translation_failed", reason=result.reason)
            raise TranslationFailure(f"Translation failed: {result.reason}")

        raw_translation = result.text
        dictionary.load(novel_id)
        processed_translation = apply_dictionary(raw_translation, dictionary.mapping)

        summary: Optional[str] = None
        if not chapter.summary and self.config.summary.enabled:
            try:
                summary = await self.summarize(processed_translation)
            except SummarizationFailure as e:
                log.warning("summary_skipped", reason=str(e))

        status = ChapterStatus.NEEDS_REVIEW if new_names else ChapterStatus.TRANSLATED
        self._store(
            novel_id,
            chapter_id,
            raw_translation,
            processed_translation,
            status,
            new_names,
            summary,
        )

        log.info(
            "chapter_translated",
            status=status.value,
            new_names=len(new_names),
            summary=summary is not None,
        )
        return ChapterTranslationResult(
            raw_translation=raw_translation,
            processed_translation=processed_translation,
            new_names=new_names,
            status=status,
            summary_generated=summary is not None,
        )

    async def summarize(self, translated_text: str) -> str:
        """Summarize a translated chapter for later context.

        Raises:
            SummarizationFailure: The capability failed or returned nothing.
        """
        prompt = SUMMARY_PROMPT.format(text=translated_text[: self.config.summary.input_chars])
        result = await _invoke(self.capabilities.summarize, prompt)
        if not result.ok:
            raise SummarizationFailure(result.reason)
        summary = result.text.strip()
        if not summary:
            raise SummarizationFailure("Empty summary")
        return summary

    def _store(
        self,
        novel_id: str,
        chapter_id: str,
        raw_translation: str,
        processed_translation: str,
        status: ChapterStatus,
        new_names: list[NameCandidate],
        summary: Optional[str],
    ) -> None:
        """Persist pending detected names, then translation, status and summary.

        Detected names go first so a chapter is never marked for review
        without the records to review.
        """
        already_pending = {
            d.original_text
            for d in self.library.list_detected_names(
                novel_id, chapter_id=chapter_id, status=DetectedNameStatus.PENDING
            )
        }
        records = [
            DetectedName(
                novel_id=novel_id,
                chapter_id=chapter_id,
                original_text=name.original_text,
                suggested_translation=name.suggested_translation,
                type=name.type,
                context=name.context,
            )
            for name in new_names
            if name.original_text not in already_pending
        ]
        self.library.add_detected_names(novel_id, records)

        chapter = self.library.get_chapter(novel_id, chapter_id)
        chapter.translation = ChapterTranslation(
            raw=raw_translation,
            processed=processed_translation,
            created_at=datetime.now(),
        )
        chapter.status = status
        chapter.pending_names = bool(new_names)
        if summary and not chapter.summary:
            chapter.summary = summary
        self.library.save_chapter(novel_id, chapter)
