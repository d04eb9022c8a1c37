"""Tests for the JSON API."""

from pathlib import Path

import pytest

from photo_ratings.web import EXTENSION_KEY, create_app


@pytest.fixture
def app(config, pool):
    app = create_app(config, pool=pool)
    app.config["TESTING"] = True
    yield app
    app.extensions[EXTENSION_KEY].shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


class TestRatingsRoutes:
    """Tests for /api/ratings."""

    def test_get_empty_collection(self, client, collection: Path):
        response = client.get("/api/ratings", query_string={"folderPath": str(collection)})

        assert response.status_code == 200
        assert response.get_json() == {"success": True, "ratings": []}

    def test_post_then_get(self, client, collection: Path):
        response = client.post("/api/ratings", json={
            "fileName": "IMG_1.jpg", "rating": 4, "folderPath": str(collection),
        })

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["id"] == "IMG_1"
        assert body["rating"] == 4
        assert body["overRuleFileRating"] is False

        ratings = client.get("/api/ratings", query_string={"folderPath": str(collection)}).get_json()["ratings"]
        assert [(r["id"], r["rating"]) for r in ratings] == [("IMG_1", 4)]

    def test_post_null_clears(self, client, collection: Path):
        client.post("/api/ratings", json={"fileName": "IMG_1.jpg", "rating": 4, "folderPath": str(collection)})
        response = client.post("/api/ratings", json={"fileName": "IMG_1.jpg", "rating": None, "folderPath": str(collection)})

        assert response.status_code == 200
        assert response.get_json()["rating"] is None

    @pytest.mark.parametrize("rating", [0, 6, 2.5, "3", True])
    def test_invalid_rating(self, client, collection: Path, rating):
        response = client.post("/api/ratings", json={
            "fileName": "IMG_1.jpg", "rating": rating, "folderPath": str(collection),
        })

        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_missing_fields(self, client, collection: Path):
        assert client.post("/api/ratings", json={"rating": 3, "folderPath": str(collection)}).status_code == 400
        assert client.get("/api/ratings").status_code == 400
        assert client.post("/api/ratings", data="not json").status_code == 400

    def test_missing_folder(self, client, temp_dir: Path):
        response = client.get("/api/ratings", query_string={"folderPath": str(temp_dir / "missing")})

        assert response.status_code == 404
        assert "not found" in response.get_json()["error"]


class TestRawRoute:
    """Tests for /api/raw."""

    def test_raw_ratings(self, client, collection: Path, make_raw):
        make_raw(collection / "raw", "IMG_1.ARW", rating=3)
        make_raw(collection / "raw", "IMG_2.dng")

        body = client.post("/api/raw", json={"folderPath": str(collection)}).get_json()

        assert body["hasRawFolder"] is True
        assert body["rawFolderPath"] == str(collection / "raw")
        assert body["ratings"] == [
            {"fileName": "IMG_1.ARW", "rating": 3},
            {"fileName": "IMG_2.dng", "rating": None},
        ]

    def test_no_raw_folder(self, client, temp_dir: Path):
        body = client.post("/api/raw", json={"folderPath": str(temp_dir)}).get_json()
        assert body == {"success": True, "hasRawFolder": False, "ratings": []}


class TestConflictRoutes:
    """Tests for /api/conflicts."""

    def test_list_and_resolve(self, client, collection: Path, make_jpeg):
        make_jpeg(collection, "IMG_1.jpg", rating=5)
        client.post("/api/ratings", json={"fileName": "IMG_1.jpg", "rating": 3, "folderPath": str(collection)})

        body = client.get("/api/conflicts", query_string={"folderPath": str(collection)}).get_json()

        assert body["hasConflicts"] is True
        assert body["conflicts"] == [{
            "fileName": "IMG_1.jpg", "embeddedRating": 5, "storedRating": 3, "kind": "jpg-conflict",
        }]

        response = client.post("/api/conflicts/resolve", json={
            "folderPath": str(collection), "resolution": "stored", **body["conflicts"][0],
        })

        assert response.status_code == 200
        assert response.get_json()["record"]["overRuleFileRating"] is True
        body = client.get("/api/conflicts", query_string={"folderPath": str(collection)}).get_json()
        assert body == {"success": True, "conflicts": [], "hasConflicts": False}

    def test_ignore(self, client, collection: Path, make_jpeg):
        make_jpeg(collection, "IMG_1.jpg", rating=5)
        client.post("/api/ratings", json={"fileName": "IMG_1.jpg", "rating": 3, "folderPath": str(collection)})

        response = client.post("/api/conflicts/resolve", json={
            "folderPath": str(collection), "fileName": "IMG_1.jpg", "resolution": "ignore",
        })

        assert response.status_code == 200
        assert response.get_json()["record"] is None

    def test_ratings_come_from_collection(self, client, app, collection: Path, make_jpeg):
        """Ratings omitted or faked by the client never reach the store."""
        make_jpeg(collection, "IMG_1.jpg", rating=5)
        client.post("/api/ratings", json={"fileName": "IMG_1.jpg", "rating": 3, "folderPath": str(collection)})

        response = client.post("/api/conflicts/resolve", json={
            "folderPath": str(collection), "fileName": "IMG_1.jpg", "resolution": "stored",
            "embeddedRating": 1, "storedRating": None,
        })

        assert response.status_code == 200
        body = response.get_json()
        assert body["conflict"] == {
            "fileName": "IMG_1.jpg", "embeddedRating": 5, "storedRating": 3, "kind": "jpg-conflict",
        }
        assert body["record"]["rating"] == 3
        assert body["record"]["overRuleFileRating"] is True

        stored = app.extensions[EXTENSION_KEY].store.get_one("IMG_1", collection)
        assert stored.rating == 3
        assert stored.overrule_file_rating is True

    def test_use_embedded_without_ratings_in_body(self, client, collection: Path, make_jpeg):
        make_jpeg(collection, "IMG_1.jpg", rating=5)
        client.post("/api/ratings", json={"fileName": "IMG_1.jpg", "rating": 3, "folderPath": str(collection)})

        response = client.post("/api/conflicts/resolve", json={
            "folderPath": str(collection), "fileName": "IMG_1.jpg", "resolution": "embedded",
        })

        assert response.status_code == 200
        assert response.get_json()["record"]["rating"] == 5
        assert response.get_json()["record"]["overRuleFileRating"] is False

    def test_no_conflict(self, client, app, collection: Path, make_jpeg):
        make_jpeg(collection, "IMG_1.jpg", rating=3)
        client.post("/api/ratings", json={"fileName": "IMG_1.jpg", "rating": 3, "folderPath": str(collection)})

        response = client.post("/api/conflicts/resolve", json={
            "folderPath": str(collection), "fileName": "IMG_1.jpg", "resolution": "stored",
            "embeddedRating": 5, "storedRating": 3,
        })

        assert response.status_code == 409
        assert response.get_json()["success"] is False
        stored = app.extensions[EXTENSION_KEY].store.get_one("IMG_1", collection)
        assert stored.rating == 3
        assert stored.overrule_file_rating is False

    def test_kind_filter(self, client, collection: Path, make_jpeg):
        make_jpeg(collection, "IMG_1.jpg", rating=5)
        client.post("/api/ratings", json={"fileName": "IMG_1.jpg", "rating": 3, "folderPath": str(collection)})

        response = client.post("/api/conflicts/resolve", json={
            "folderPath": str(collection), "fileName": "IMG_1.jpg", "resolution": "embedded",
            "kind": "raw-conflict",
        })
        assert response.status_code == 409

        response = client.post("/api/conflicts/resolve", json={
            "folderPath": str(collection), "fileName": "IMG_1.jpg", "resolution": "embedded",
            "kind": "match",
        })
        assert response.status_code == 400

    def test_unknown_resolution(self, client, collection: Path):
        response = client.post("/api/conflicts/resolve", json={
            "folderPath": str(collection), "fileName": "IMG_1.jpg", "resolution": "both",
        })
        assert response.status_code == 400


class TestSetRatingsRoute:
    """Tests for /api/set-ratings."""

    def test_apply(self, client, collection: Path, make_jpeg):
        make_jpeg(collection, "a.jpg", rating=5)
        make_jpeg(collection, "b.jpg")
        client.post("/api/ratings", json={"fileName": "b.jpg", "rating": 2, "folderPath": str(collection)})

        response = client.post("/api/set-ratings", json={"folderPath": str(collection)})

        assert response.status_code == 200
        assert response.get_json() == {
            "success": True,
            "dbUpdatesCount": 1,
            "fileUpdatesCount": 1,
            "failures": [],
            "blocked": False,
        }

    def test_blocked(self, client, collection: Path, make_jpeg, make_raw):
        make_jpeg(collection, "a.jpg", rating=4)
        make_raw(collection / "raw", "a.ARW", rating=2)

        response = client.post("/api/set-ratings", json={"folderPath": str(collection)})

        assert response.status_code == 409
        body = response.get_json()
        assert body["success"] is False
        assert body["blocked"] is True

    def test_missing_folder(self, client, temp_dir: Path):
        response = client.post("/api/set-ratings", json={"folderPath": str(temp_dir / "missing")})
        assert response.status_code == 404
