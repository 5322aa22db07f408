"""Per-novel name dictionary with a request-scoped cache."""

from typing import Optional, Union

import structlog

from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import NameEntry, NameType

logger = structlog.get_logger()


class NameDictionary:
    """Canonical original-name → translated-name mapping for one novel.

    An instance is meant to live for a single pipeline invocation: construct
    it (or call ``load``) at the start of each request and do not share it
    between concurrent requests. The library remains the source of truth.
    """

    def __init__(self, library: NovelLibrary) -> None:
        self._library = library
        self.novel_id: Optional[str] = None
        self.entries: list[NameEntry] = []
        self._cache: dict[str, str] = {}

    def load(self, novel_id: str) -> dict[str, str]:
        """Replace the cached mapping with the stored dictionary of a novel.

        Returns:
            Copy of the loaded original → translated mapping
        """
        entries = self._library.list_names(novel_id)
        self.novel_id = novel_id
        self.entries = entries
        self._cache = {e.original_name: e.translated_name for e in entries}
        logger.debug("name_dictionary_loaded", novel_id=novel_id, entries=len(entries))
        return dict(self._cache)

    def lookup(self, original_name: str) -> Optional[str]:
        """Exact-match lookup of a canonical translation."""
        return self._cache.get(original_name)

    def insert(
        self,
        novel_id: str,
        original_name: str,
        translated_name: str,
        type: Union[NameType, str] = NameType.CHARACTER,
        context: Optional[str] = None,
    ) -> NameEntry:
        """Add a new name; persisted first, then reflected in the cache.

        Raises:
            ConflictError: The novel already has an entry for ``original_name``.
        """
        entry = self._library.insert_name(
            NameEntry(
                novel_id=novel_id,
                original_name=original_name,
                translated_name=translated_name,
                type=type,
                context=context,
            )
        )
        if self.novel_id in (None, novel_id):
            self.novel_id = novel_id
            self.entries.append(entry)
            self._cache[original_name] = translated_name
        logger.info(
            "name_added",
            novel_id=novel_id,
            original=original_name,
            translated=translated_name,
        )
        return entry

    @property
    def mapping(self) -> dict[str, str]:
        """Current cached mapping (read-only copy)."""
        return dict(self._cache)

    def __contains__(self, original_name: str) -> bool:
        return original_name in self._cache

    def __len__(self) -> int:
        return len(self._cache)
