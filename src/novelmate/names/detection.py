"""Proper-noun detection: model extraction with a heuristic fallback."""

import json
import re
from typing import Optional

import structlog
from pydantic import ValidationError

from novelmate.config import DetectionConfig, get_config
from novelmate.errors import ParseError
from novelmate.names.dictionary import NameDictionary
from novelmate.names.heuristics import detect_with_heuristics
from novelmate.names.models import NameCandidate
from novelmate.storage.library import NovelLibrary
from novelmate.translator.llm import CapabilityResult, TextCapability

logger = structlog.get_logger()

LANGUAGE_NAMES = {
    "ko": "Korean",
    "ja": "Japanese",
    "en": "English",
}

NAME_EXTRACTION_PROMPT = """The following is text from a {language} novel.
Identify all proper nouns (character names, location names, organizations, special terms) that appear in this text.
Return them as a JSON array of objects with the originalText, the type of name
(character, location, organization, item, concept, other) and your best phonetic translation to English.

Example format:
[
    {{"originalText": "{example_name}", "type": "character", "suggestedTranslation": "{example_translation}"}},
    {{"originalText": "{example_place}", "type": "location", "suggestedTranslation": "{example_place_translation}"}}
]

Return ONLY the JSON array. If there are no proper nouns, return [].

Text:
{text}"""

_EXAMPLES = {
    "ko": ("김철수", "Kim Cheol-su", "서울", "Seoul"),
    "ja": ("田中太郎", "Tanaka Taro", "東京", "Tokyo"),
}


def build_extraction_prompt(text: str, language: str) -> str:
    """Build the extraction request for a (possibly truncated) text sample."""
    name, name_tr, place, place_tr = _EXAMPLES.get(language, _EXAMPLES["ko"])
    return NAME_EXTRACTION_PROMPT.format(
        language=LANGUAGE_NAMES.get(language, language),
        example_name=name,
        example_translation=name_tr,
        example_place=place,
        example_place_translation=place_tr,
        text=text,
    )


def parse_extraction_response(response: str) -> list[NameCandidate]:
    """Parse the model's JSON array of names.

    Raises:
        ParseError: No JSON array found, invalid JSON, or items that do not
            validate as name candidates.
    """
    json_match = re.search(r"\[.*\]", response or "", re.DOTALL)
    if not json_match:
        raise ParseError("No JSON array in extraction response")

    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in extraction response: {e}") from e

    if not isinstance(data, list):
        raise ParseError("Extraction response is not a JSON array")

    try:
        return [NameCandidate.model_validate(item) for item in data]
    except ValidationError as e:
        raise ParseError(f"Malformed name entry: {e.error_count()} error(s)") from e


class NameDetectionService:
    """Find names in source text that the novel's dictionary does not know yet."""

    def __init__(
        self,
        library: NovelLibrary,
        extract: TextCapability,
        config: Optional[DetectionConfig] = None,
    ) -> None:
        self.library = library
        self.extract = extract
        self.config = config or get_config().detection

    async def detect_names(
        self,
        text: str,
        novel_id: str,
        language: str = "ko",
        dictionary: Optional[NameDictionary] = None,
    ) -> list[NameCandidate]:
        """Detect candidate names absent from the novel's dictionary.

        Only the first ``prompt_chars`` characters are sent to the model. When
        the model fails or its output cannot be parsed, the heuristic detector
        for ``language`` scans the full text instead (or the same prefix when
        ``truncate_fallback`` is set). Never raises because of the model.

        Args:
            text: Source-language text
            novel_id: Novel whose dictionary filters the results
            language: Source language code (ko, ja)
            dictionary: Request-scoped dictionary to (re)load; a fresh one if None

        Returns:
            Unique candidates in detection order
        """
        if dictionary is None:
            dictionary = NameDictionary(self.library)
        dictionary.load(novel_id)

        text = text or ""
        sample = text[: self.config.prompt_chars]
        candidates = await self._extract(sample, language)

        if candidates is None:
            fallback_text = sample if self.config.truncate_fallback else text
            candidates = detect_with_heuristics(fallback_text, language)
            logger.info(
                "names_detected_heuristically",
                novel_id=novel_id,
                language=language,
                candidates=len(candidates),
            )

        new_names: list[NameCandidate] = []
        seen: set[str] = set()
        for candidate in candidates:
            if candidate.original_text in dictionary or candidate.original_text in seen:
                continue
            seen.add(candidate.original_text)
            new_names.append(candidate)

        logger.info(
            "names_detected",
            novel_id=novel_id,
            candidates=len(candidates),
            new=len(new_names),
        )
        return new_names

    async def _extract(self, sample: str, language: str) -> Optional[list[NameCandidate]]:
        """Ask the model for names; None means fall back to heuristics."""
        prompt = build_extraction_prompt(sample, language)
        try:
            result: CapabilityResult = await self.extract(prompt)
        except Exception as e:
            logger.warning("name_extraction_failed", error=str(e))
            return None

        if not result.ok:
            logger.warning("name_extraction_failed", reason=result.reason)
            return None

        try:
            return parse_extraction_response(result.text)
        except ParseError as e:
            logger.warning("name_extraction_parse_failed", error=str(e))
            return None
