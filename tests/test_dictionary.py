"""Tests for the request-scoped name dictionary."""

import pytest

from novelmate.errors import ConflictError, NotFoundError
from novelmate.names.dictionary import NameDictionary
from novelmate.storage.models import NameEntry, NameType


def test_load_empty(library, novel):
    dictionary = NameDictionary(library)
    assert dictionary.load(novel.id) == {}
    assert len(dictionary) == 0


def test_load_unknown_novel(library):
    with pytest.raises(NotFoundError):
        NameDictionary(library).load("missing")


def test_insert_is_readable_immediately(library, novel):
    dictionary = NameDictionary(library)
    dictionary.load(novel.id)
    entry = dictionary.insert(novel.id, "김철수", "Kim Cheol-su")

    assert entry.type == NameType.CHARACTER
    assert dictionary.lookup("김철수") == "Kim Cheol-su"
    assert "김철수" in dictionary
    assert NameDictionary(library).load(novel.id) == {"김철수": "Kim Cheol-su"}


def test_load_replaces_cache(library, novel):
    dictionary = NameDictionary(library)
    dictionary.load(novel.id)
    dictionary.insert(novel.id, "김철수", "Kim Cheol-su")

    # Entry removed behind the dictionary's back
    library.delete_name(novel.id, library.list_names(novel.id)[0].id)
    library.insert_name(NameEntry(novel_id=novel.id, original_name="서울", translated_name="Seoul"))

    assert dictionary.load(novel.id) == {"서울": "Seoul"}
    assert dictionary.lookup("김철수") is None


def test_duplicate_insert_leaves_state_unchanged(library, novel):
    dictionary = NameDictionary(library)
    dictionary.load(novel.id)
    dictionary.insert(novel.id, "서울", "Seoul", NameType.LOCATION)

    with pytest.raises(ConflictError):
        dictionary.insert(novel.id, "서울", "Soul")

    assert dictionary.lookup("서울") == "Seoul"
    assert dictionary.load(novel.id) == {"서울": "Seoul"}


def test_mapping_is_a_copy(library, novel):
    dictionary = NameDictionary(library)
    dictionary.load(novel.id)
    dictionary.mapping["x"] = "y"
    assert "x" not in dictionary
