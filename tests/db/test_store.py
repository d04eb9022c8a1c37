"""Unit tests for the rating store and its connection pool."""

import threading
from pathlib import Path

import pytest

from photo_ratings.db.store import RatingStore, StorePool, resolve_collection
from photo_ratings.exceptions import CollectionNotFoundError, InvalidRatingError


class TestResolveCollection:
    """Tests for resolve_collection()."""

    def test_existing_folder(self, collection: Path):
        assert resolve_collection(str(collection)) == collection.resolve()

    def test_missing_folder_raises(self, temp_dir: Path):
        with pytest.raises(CollectionNotFoundError):
            resolve_collection(temp_dir / "missing")

    def test_file_is_not_a_collection(self, temp_dir: Path):
        path = temp_dir / "photo.jpg"
        path.write_bytes(b"x")
        with pytest.raises(CollectionNotFoundError):
            resolve_collection(path)


class TestStorePool:
    """Tests for StorePool."""

    def test_database_created_in_npo_folder(self, pool: StorePool, collection: Path):
        pool.engine(collection)

        assert (collection / "_npo" / "ratings.db").is_file()
        assert pool.db_path(collection) == collection.resolve() / "_npo" / "ratings.db"

    def test_engine_is_reused(self, pool: StorePool, collection: Path):
        assert pool.engine(collection) is pool.engine(str(collection))
        assert len(pool.open_collections) == 1

    def test_one_database_per_collection(self, pool: StorePool, temp_dir: Path):
        first = temp_dir / "a"
        second = temp_dir / "b"
        first.mkdir()
        second.mkdir()

        assert pool.engine(first) is not pool.engine(second)
        assert len(pool.open_collections) == 2

    def test_close_disposes_one_collection(self, pool: StorePool, temp_dir: Path):
        first = temp_dir / "a"
        second = temp_dir / "b"
        first.mkdir()
        second.mkdir()
        pool.engine(first)
        pool.engine(second)

        pool.close(first)

        assert pool.open_collections == [pool.db_path(second)]

    def test_close_all(self, pool: StorePool, collection: Path):
        pool.engine(collection)
        pool.close_all()
        assert pool.open_collections == []

    def test_missing_collection_raises_before_creating_anything(self, pool: StorePool, temp_dir: Path):
        with pytest.raises(CollectionNotFoundError):
            pool.engine(temp_dir / "missing")
        assert not (temp_dir / "missing").exists()

    def test_session_rolls_back_on_error(self, store: RatingStore, pool: StorePool, collection: Path):
        from photo_ratings.db.models import RatingModel

        with pytest.raises(RuntimeError):
            with pool.session(collection) as session:
                session.add(RatingModel(id="IMG_1", rating=3, overrule_file_rating=False))
                raise RuntimeError("boom")

        assert store.get(collection) == {}


class TestRatingStore:
    """Tests for RatingStore."""

    def test_get_empty_collection(self, store: RatingStore, collection: Path):
        """A new collection has no records and does not fail."""
        assert store.get(collection) == {}

    def test_upsert_creates_record(self, store: RatingStore, collection: Path):
        record = store.upsert("IMG_1", collection, 4, False)

        assert record.id == "IMG_1"
        assert record.rating == 4
        assert record.overrule_file_rating is False

        stored = store.get(collection)
        assert list(stored) == ["IMG_1"]
        assert stored["IMG_1"].rating == 4
        assert stored["IMG_1"].overrule_file_rating is False

    def test_upsert_replaces_existing_record(self, store: RatingStore, collection: Path):
        first = store.upsert("IMG_1", collection, 2, True)
        second = store.upsert("IMG_1", collection, 5, False)

        stored = store.get_one("IMG_1", collection)
        assert stored.rating == 5
        assert stored.overrule_file_rating is False
        assert stored.updated_at >= first.updated_at
        assert stored.updated_at == second.updated_at
        assert len(store.get(collection)) == 1

    @pytest.mark.parametrize("rating,overrule", [(4, True), (4, False), (None, True), (2, None)])
    def test_upsert_is_idempotent(self, store: RatingStore, collection: Path, rating, overrule):
        """Repeating an upsert leaves rating and flag as the first call set them."""
        store.upsert("IMG_1", collection, rating, overrule)
        store.upsert("IMG_1", collection, rating, overrule)

        stored = store.get(collection)
        assert list(stored) == ["IMG_1"]
        assert stored["IMG_1"].rating == rating
        assert stored["IMG_1"].overrule_file_rating is overrule

    def test_upsert_null_clears_rating(self, store: RatingStore, collection: Path):
        store.upsert("IMG_1", collection, 3, False)
        store.upsert("IMG_1", collection, None, None)

        stored = store.get_one("IMG_1", collection)
        assert stored.rating is None
        assert stored.overrule_file_rating is None

    @pytest.mark.parametrize("rating", [0, 6, -2, "4"])
    def test_upsert_rejects_invalid_rating(self, store: RatingStore, collection: Path, rating):
        with pytest.raises(InvalidRatingError):
            store.upsert("IMG_1", collection, rating, False)
        assert store.get(collection) == {}

    def test_get_one_missing(self, store: RatingStore, collection: Path):
        assert store.get_one("nope", collection) is None

    def test_collections_are_isolated(self, store: RatingStore, temp_dir: Path):
        first = temp_dir / "a"
        second = temp_dir / "b"
        first.mkdir()
        second.mkdir()

        store.upsert("IMG_1", first, 1, False)

        assert store.get(second) == {}

    def test_records_survive_reopening(self, config, collection: Path):
        with StorePool(config) as pool:
            RatingStore(pool).upsert("IMG_1", collection, 5, True)

        with StorePool(config) as pool:
            record = RatingStore(pool).get_one("IMG_1", collection)

        assert record.rating == 5
        assert record.overrule_file_rating is True

    def test_reset_overrule_flags(self, store: RatingStore, collection: Path):
        """Every flag is cleared; ratings and timestamps stay."""
        flagged = store.upsert("IMG_1", collection, 3, True)
        store.upsert("IMG_2", collection, 4, False)
        store.upsert("IMG_3", collection, 5, None)

        count = store.reset_overrule_flags(collection)

        assert count == 1
        stored = store.get(collection)
        assert all(record.overrule_file_rating is False for record in stored.values())
        assert stored["IMG_1"].rating == 3
        assert stored["IMG_1"].updated_at == flagged.updated_at

    def test_reset_on_empty_collection(self, store: RatingStore, collection: Path):
        assert store.reset_overrule_flags(collection) == 0

    def test_concurrent_upserts_of_distinct_identities(self, store: RatingStore, collection: Path):
        store.get(collection)

        threads = [
            threading.Thread(target=store.upsert, args=(f"IMG_{i}", collection, i % 5 + 1, False))
            for i in range(10)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store.get(collection)) == 10
