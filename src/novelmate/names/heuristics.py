"""Pattern-based proper-noun detectors used when model extraction fails.

These are deliberately loose: they guarantee some output for human review,
not accuracy. Each source language gets its own ``HeuristicDetector``;
supporting another language means registering another detector.
"""

import re
from typing import Optional

import structlog

from novelmate.names.models import NameCandidate

logger = structlog.get_logger()


class HeuristicDetector:
    """Regex detector for one source language."""

    language: str = ""
    patterns: list[re.Pattern] = []

    def detect(self, text: str) -> list[NameCandidate]:
        """Return every pattern match as an untyped candidate, in pattern order."""
        candidates: list[NameCandidate] = []
        for pattern in self.patterns:
            for match in pattern.finditer(text):
                candidates.append(
                    NameCandidate(
                        original_text=match.group(0),
                        type="unknown",
                        suggested_translation="",
                    )
                )
        return candidates


class KoreanDetector(HeuristicDetector):
    """Hangul names followed by a title, and short spaced Hangul pairs."""

    language = "ko"
    patterns = [
        re.compile(
            r"([가-힣]{1,2})\s?([가-힣]{1,2})"
            r"(장군|선생|박사|교수|부장|과장|씨|님|군|양)"
        ),
        re.compile(r"([가-힣]{1,2})\s([가-힣]{1,2})"),
    ]


class JapaneseDetector(HeuristicDetector):
    """Kanji/kana names followed by an honorific, and short spaced pairs."""

    language = "ja"
    patterns = [
        re.compile(
            r"([一-龯ぁ-んァ-ン]{1,2})\s?([一-龯ぁ-んァ-ン]{1,2})"
            r"(さん|くん|ちゃん|先生|様|殿|氏)"
        ),
        re.compile(r"([一-龯ぁ-んァ-ン]{1,2})\s([一-龯ぁ-んァ-ン]{1,2})"),
    ]


_DETECTORS: dict[str, HeuristicDetector] = {}


def register_detector(detector: HeuristicDetector) -> None:
    """Register (or replace) the detector for ``detector.language``."""
    _DETECTORS[detector.language] = detector


def get_detector(language: str) -> Optional[HeuristicDetector]:
    """Get the detector registered for a language code, if any."""
    return _DETECTORS.get(language)


def detect_with_heuristics(text: str, language: str) -> list[NameCandidate]:
    """Run the heuristic detector for ``language`` over ``text``.

    Never raises; returns an empty list for unknown languages or on error.
    """
    detector = get_detector(language)
    if detector is None:
        logger.warning("heuristic_detector_missing", language=language)
        return []
    try:
        return detector.detect(text or "")
    except Exception as e:
        logger.error("heuristic_detection_failed", language=language, error=str(e))
        return []


register_detector(KoreanDetector())
register_detector(JapaneseDetector())
