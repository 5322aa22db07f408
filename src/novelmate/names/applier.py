"""Dictionary application: enforce canonical names in translated text."""

from collections.abc import Mapping


def apply_dictionary(text: str, dictionary: Mapping[str, str]) -> str:
    """Replace every known original name in ``text`` with its translation.

    Names are processed longest first so a short name that is a substring of
    a longer one (철수 inside 김철수) cannot break the longer match. Each name
    is matched literally and all non-overlapping occurrences are replaced
    against the progressively rewritten text.

    A translation equal to another entry's original name can be substituted
    twice; this is not guarded against.
    """
    if not text or not dictionary:
        return text

    ordered = sorted(dictionary.items(), key=lambda item: len(item[0]), reverse=True)
    for original_name, translated_name in ordered:
        if original_name:
            text = text.replace(original_name, translated_name)
    return text
