"""Name detection, the per-novel name dictionary and dictionary application."""

from novelmate.names.applier import apply_dictionary
from novelmate.names.detection import NameDetectionService, parse_extraction_response
from novelmate.names.dictionary import NameDictionary
from novelmate.names.heuristics import (
    HeuristicDetector,
    JapaneseDetector,
    KoreanDetector,
    detect_with_heuristics,
    get_detector,
    register_detector,
)
from novelmate.names.models import NameCandidate

__all__ = [
    "apply_dictionary",
    "NameCandidate",
    "NameDetectionService",
    "NameDictionary",
    "HeuristicDetector",
    "KoreanDetector",
    "JapaneseDetector",
    "detect_with_heuristics",
    "get_detector",
    "register_detector",
    "parse_extraction_response",
]
