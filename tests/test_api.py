"""Tests for the FastAPI API server."""

import json

import pytest
from fastapi.testclient import TestClient

from novelmate.api.server import create_app
from novelmate.translator.llm import CapabilityResult

NAMES_REPLY = json.dumps(
    [{"originalText": "김철수", "type": "character", "suggestedTranslation": "Kim Chul-soo"}],
    ensure_ascii=False,
)


@pytest.fixture
def client(app_config, make_capabilities):
    caps = make_capabilities(extract=NAMES_REPLY, translate="김철수 arrived.")
    app = create_app(novels_dir=app_config.novels_dir, capabilities=caps, config=app_config)
    return TestClient(app)


@pytest.fixture
def novel_id(client) -> str:
    response = client.post("/api/v1/novels", json={"title": "나 혼자만 레벨업"})
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def chapter_id(client, novel_id) -> str:
    response = client.post(
        f"/api/v1/novels/{novel_id}/chapters",
        json={"number": 1, "title": "1화", "source_text": "김철수는 웃었다."},
    )
    assert response.status_code == 201
    return response.json()["id"]


def test_health_endpoint(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "version" in data


class TestNovelRoutes:
    def test_list_empty(self, client):
        response = client.get("/api/v1/novels")
        assert response.status_code == 200
        assert response.json() == []

    def test_create_and_get(self, client, novel_id):
        response = client.get(f"/api/v1/novels/{novel_id}")
        assert response.status_code == 200
        assert response.json()["title"] == "나 혼자만 레벨업"
        assert response.json()["source_language"] == "ko"

    def test_create_rejects_unsupported_language(self, client):
        response = client.post("/api/v1/novels", json={"title": "x", "source_language": "zh"})
        assert response.status_code == 422

    def test_get_unknown_is_404(self, client):
        response = client.get("/api/v1/novels/missing")
        assert response.status_code == 404
        assert "Novel not found" in response.json()["detail"]

    def test_update(self, client, novel_id):
        response = client.put(f"/api/v1/novels/{novel_id}", json={"author": "추공"})
        assert response.status_code == 200
        assert response.json()["author"] == "추공"
        assert response.json()["title"] == "나 혼자만 레벨업"

    def test_delete(self, client, novel_id):
        assert client.delete(f"/api/v1/novels/{novel_id}").status_code == 200
        assert client.get(f"/api/v1/novels/{novel_id}").status_code == 404

    def test_duplicate_chapter_is_409(self, client, novel_id, chapter_id):
        response = client.post(
            f"/api/v1/novels/{novel_id}/chapters",
            json={"number": 1, "source_text": "중복"},
        )
        assert response.status_code == 409

    def test_complete_untranslated_is_400(self, client, novel_id, chapter_id):
        response = client.post(f"/api/v1/novels/{novel_id}/chapters/{chapter_id}/complete")
        assert response.status_code == 400


class TestNameRoutes:
    def test_create_list_and_conflict(self, client, novel_id):
        url = f"/api/v1/novels/{novel_id}/names"
        body = {"originalName": "서울", "translatedName": "Seoul", "type": "location"}
        assert client.post(url, json=body).status_code == 201
        assert client.post(url, json=body).status_code == 409

        names = client.get(url).json()
        assert len(names) == 1
        assert names[0]["translated_name"] == "Seoul"

    def test_update_and_delete(self, client, novel_id):
        url = f"/api/v1/novels/{novel_id}/names"
        created = client.post(url, json={"originalName": "서울", "translatedName": "Soul"}).json()

        response = client.put(f"{url}/{created['id']}", json={"translatedName": "Seoul"})
        assert response.status_code == 200
        assert response.json()["translated_name"] == "Seoul"

        assert client.delete(f"{url}/{created['id']}").status_code == 200
        assert client.delete(f"{url}/{created['id']}").status_code == 404

    def test_export_and_import_csv(self, client, novel_id):
        url = f"/api/v1/novels/{novel_id}/names"
        client.post(url, json={"originalName": "서울", "translatedName": "Seoul"})

        export = client.get(f"{url}/export")
        assert export.status_code == 200
        assert "text/csv" in export.headers["content-type"]
        assert "서울,Seoul" in export.text

        csv_bytes = "original_name,translated_name,type,context\n부산,Busan,location,\n".encode()
        response = client.post(
            f"{url}/import", files={"file": ("names.csv", csv_bytes, "text/csv")}
        )
        assert response.status_code == 200
        assert response.json()["imported"] == 1
        assert response.json()["total"] == 2


class TestTranslationRoutes:
    def test_translate_then_resolve(self, client, novel_id, chapter_id):
        base = f"/api/v1/novels/{novel_id}/chapters/{chapter_id}"

        response = client.post(f"{base}/translate")
        assert response.status_code == 200
        data = response.json()
        assert data["needs_review"] is True
        assert data["status"] == "needs_review"
        assert data["new_names"][0]["originalText"] == "김철수"

        pending = client.get(f"{base}/detected-names").json()
        assert len(pending) == 1

        response = client.put(
            f"{base}/resolve-names",
            json={
                "resolvedNames": [
                    {
                        "detectedNameId": pending[0]["id"],
                        "action": "add",
                        "translatedName": "Kim Cheol-su",
                    }
                ]
            },
        )
        assert response.status_code == 200
        result = response.json()
        assert result["results"][0]["success"] is True
        assert result["remaining_pending"] == 0
        assert result["chapter_status"] == "translated"

        assert client.get(f"{base}/detected-names").json() == []
        assert len(client.get(f"{base}/detected-names?status=all").json()) == 1

        response = client.post(f"{base}/translate")
        assert response.json()["translation"] == "Kim Cheol-su arrived."
        assert response.json()["needs_review"] is False

    def test_detected_names_bad_status(self, client, novel_id, chapter_id):
        response = client.get(
            f"/api/v1/novels/{novel_id}/chapters/{chapter_id}/detected-names?status=bogus"
        )
        assert response.status_code == 400

    def test_translation_failure_is_502(self, app_config, make_capabilities):
        caps = make_capabilities(translate=CapabilityResult.failure("upstream down"))
        client = TestClient(
            create_app(novels_dir=app_config.novels_dir, capabilities=caps, config=app_config)
        )
        novel_id = client.post("/api/v1/novels", json={"title": "x"}).json()["id"]
        chapter_id = client.post(
            f"/api/v1/novels/{novel_id}/chapters", json={"number": 1, "source_text": "본문"}
        ).json()["id"]

        response = client.post(f"/api/v1/novels/{novel_id}/chapters/{chapter_id}/translate")
        assert response.status_code == 502
        assert "upstream down" in response.json()["detail"]

        chapter = client.get(f"/api/v1/novels/{novel_id}/chapters/{chapter_id}").json()
        assert chapter["status"] == "pending"
        assert chapter["translation"] is None

    def test_translate_unknown_chapter_is_404(self, client, novel_id):
        response = client.post(f"/api/v1/novels/{novel_id}/chapters/missing/translate")
        assert response.status_code == 404

    def test_detect_names(self, client, novel_id):
        response = client.post(
            f"/api/v1/novels/{novel_id}/detect-names", json={"text": "김철수는 웃었다."}
        )
        assert response.status_code == 200
        assert response.json()[0]["originalText"] == "김철수"
        assert response.json()[0]["suggestedTranslation"] == "Kim Chul-soo"

    def test_detect_and_translate_share_candidate_keys(self, client, novel_id, chapter_id):
        detected = client.post(
            f"/api/v1/novels/{novel_id}/detect-names", json={"text": "김철수는 웃었다."}
        ).json()
        translated = client.post(
            f"/api/v1/novels/{novel_id}/chapters/{chapter_id}/translate"
        ).json()

        assert set(detected[0]) == set(translated["new_names"][0])
        assert {"originalText", "type", "suggestedTranslation"} <= set(detected[0])
