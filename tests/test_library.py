"""Tests for the file-backed novel library."""

import threading

import pytest

from novelmate.errors import ConflictError, NotFoundError
from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import (
    Chapter,
    DetectedName,
    DetectedNameStatus,
    NameEntry,
    NameType,
    Novel,
)


class TestNovels:
    def test_create_and_get(self, library):
        created = library.create_novel(Novel(title="テスト", source_language="ja"))
        loaded = library.get_novel(created.id)
        assert loaded.title == "テスト"
        assert loaded.source_language == "ja"
        assert (library.root / created.id / "novel.json").exists()

    def test_list_empty_root(self, tmp_path):
        assert NovelLibrary(tmp_path / "missing").list_novels() == []

    def test_list_newest_first(self, library):
        first = library.create_novel(Novel(title="one"))
        second = library.create_novel(Novel(title="two"))
        ids = [n.id for n in library.list_novels()]
        assert ids.index(second.id) < ids.index(first.id)

    def test_get_unknown(self, library):
        with pytest.raises(NotFoundError, match="Novel not found"):
            library.get_novel("nope")

    def test_path_traversal_rejected(self, library):
        with pytest.raises(NotFoundError):
            library.get_novel("../etc")

    def test_delete(self, library, novel):
        library.delete_novel(novel.id)
        with pytest.raises(NotFoundError):
            library.get_novel(novel.id)


class TestChapters:
    def test_duplicate_number_conflicts(self, library, novel):
        with pytest.raises(ConflictError):
            library.add_chapter(novel.id, Chapter(number=1, source_text="x"))

    def test_chapters_kept_in_number_order(self, library, novel):
        library.add_chapter(novel.id, Chapter(number=3, source_text="c"))
        library.add_chapter(novel.id, Chapter(number=2, source_text="b"))
        numbers = [c.number for c in library.get_novel(novel.id).chapters]
        assert numbers == [1, 2, 3]

    def test_save_unknown_chapter(self, library, novel):
        with pytest.raises(NotFoundError):
            library.save_chapter(novel.id, Chapter(number=9))

    def test_renumber_onto_existing_conflicts(self, library, novel):
        other = library.add_chapter(novel.id, Chapter(number=2, source_text="b"))
        other.number = 1
        with pytest.raises(ConflictError):
            library.save_chapter(novel.id, other)

    def test_delete_removes_detected_names(self, library, novel):
        chapter = novel.chapters[0]
        library.add_detected_names(
            novel.id,
            [DetectedName(novel_id=novel.id, chapter_id=chapter.id, original_text="김철수")],
        )
        library.delete_chapter(novel.id, chapter.id)
        assert library.list_detected_names(novel.id) == []


class TestNames:
    def test_insert_and_list(self, library, novel):
        library.insert_name(
            NameEntry(
                novel_id=novel.id,
                original_name="김철수",
                translated_name="Kim Cheol-su",
                context="주인공, 쉼표",
            )
        )
        entries = library.list_names(novel.id)
        assert len(entries) == 1
        assert entries[0].original_name == "김철수"
        assert entries[0].type == NameType.CHARACTER
        assert entries[0].context == "주인공, 쉼표"

    def test_duplicate_original_conflicts_and_keeps_state(self, library, novel):
        library.insert_name(
            NameEntry(novel_id=novel.id, original_name="서울", translated_name="Seoul")
        )
        with pytest.raises(ConflictError, match="already exists"):
            library.insert_name(
                NameEntry(novel_id=novel.id, original_name="서울", translated_name="Soul")
            )
        entries = library.list_names(novel.id)
        assert [(e.original_name, e.translated_name) for e in entries] == [("서울", "Seoul")]

    def test_concurrent_inserts_of_same_name(self, library, novel):
        errors: list[Exception] = []

        def insert(translation: str) -> None:
            try:
                library.insert_name(
                    NameEntry(
                        novel_id=novel.id, original_name="김철수", translated_name=translation
                    )
                )
            except ConflictError as e:
                errors.append(e)

        threads = [threading.Thread(target=insert, args=(f"Kim {i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(library.list_names(novel.id)) == 1
        assert len(errors) == 7

    def test_same_original_in_two_novels(self, library, novel):
        other = library.create_novel(Novel(title="other"))
        for novel_id in (novel.id, other.id):
            library.insert_name(
                NameEntry(novel_id=novel_id, original_name="서울", translated_name="Seoul")
            )
        assert len(library.list_names(other.id)) == 1

    def test_get_and_delete_unknown(self, library, novel):
        with pytest.raises(NotFoundError):
            library.get_name(novel.id, "missing")
        with pytest.raises(NotFoundError):
            library.delete_name(novel.id, "missing")


class TestDetectedNames:
    def test_filter_by_chapter_and_status(self, library, novel):
        chapter_id = novel.chapters[0].id
        records = [
            DetectedName(novel_id=novel.id, chapter_id=chapter_id, original_text="김철수"),
            DetectedName(
                novel_id=novel.id,
                chapter_id=chapter_id,
                original_text="서울",
                status=DetectedNameStatus.IGNORED,
            ),
            DetectedName(novel_id=novel.id, chapter_id="other", original_text="부산"),
        ]
        library.add_detected_names(novel.id, records)

        assert len(library.list_detected_names(novel.id)) == 3
        assert len(library.list_detected_names(novel.id, chapter_id=chapter_id)) == 2
        assert library.count_pending(novel.id, chapter_id) == 1

    def test_get_missing_returns_none(self, library, novel):
        assert library.get_detected_name(novel.id, "missing") is None

    def test_save_updates_status(self, library, novel):
        record = DetectedName(
            novel_id=novel.id, chapter_id=novel.chapters[0].id, original_text="김철수"
        )
        library.add_detected_names(novel.id, [record])
        record.status = DetectedNameStatus.RESOLVED
        library.save_detected_name(record)
        assert library.get_detected_name(novel.id, record.id).status == DetectedNameStatus.RESOLVED
