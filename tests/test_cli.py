"""Tests for the command-line interface."""

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from photo_ratings import cli
from photo_ratings.cli import main
from photo_ratings.config import get_config
from photo_ratings.db.store import RatingStore, StorePool
from photo_ratings.metadata.reader import MetadataReader


@pytest.fixture
def runner(mocker) -> CliRunner:
    mocker.patch("photo_ratings.cli.setup_logging")
    return CliRunner()


def _stored(collection: Path):
    with StorePool() as pool:
        return RatingStore(pool).get(collection)


class TestStatus:
    """Tests for the status command."""

    def test_lists_every_photo(self, runner, collection: Path, make_jpeg, make_raw):
        make_jpeg(collection, "a.jpg", rating=5)
        make_jpeg(collection, "b.jpg")
        make_raw(collection / "raw", "c.ARW", rating=2)

        result = runner.invoke(main, ["status", str(collection)])

        assert result.exit_code == 0
        assert "a.jpg" in result.output
        assert "b.jpg" in result.output
        assert "c.ARW" in result.output
        assert "file-only" in result.output
        assert "3 photo(s)" in result.output

    def test_conflicts_only(self, runner, collection: Path, make_jpeg, make_raw):
        make_jpeg(collection, "a.jpg", rating=5)
        make_jpeg(collection, "b.jpg", rating=4)
        make_raw(collection / "raw", "b.ARW", rating=1)

        result = runner.invoke(main, ["status", str(collection), "--conflicts-only"])

        assert result.exit_code == 0
        assert "b.jpg" in result.output
        assert "a.jpg" not in result.output
        assert "jpg-raw-mismatch" in result.output

    def test_rating_filter(self, runner, collection: Path, make_jpeg):
        make_jpeg(collection, "a.jpg")
        make_jpeg(collection, "b.jpg")
        runner.invoke(main, ["rate", str(collection), "a.jpg", "5"])

        result = runner.invoke(main, ["status", str(collection), "--rating", "5"])
        assert "a.jpg" in result.output
        assert "b.jpg" not in result.output

        result = runner.invoke(main, ["status", str(collection), "--unrated"])
        assert "b.jpg" in result.output
        assert "a.jpg" not in result.output

    def test_no_match(self, runner, collection: Path):
        result = runner.invoke(main, ["status", str(collection)])

        assert result.exit_code == 0
        assert "No photos match." in result.output

    def test_missing_folder(self, runner, temp_dir: Path):
        result = runner.invoke(main, ["status", str(temp_dir / "missing")])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestRate:
    """Tests for the rate command."""

    def test_rate(self, runner, collection: Path):
        result = runner.invoke(main, ["rate", str(collection), "IMG_1.jpg", "4"])

        assert result.exit_code == 0
        assert "IMG_1: 4" in result.output
        assert _stored(collection)["IMG_1"].rating == 4

    def test_clear(self, runner, collection: Path):
        runner.invoke(main, ["rate", str(collection), "IMG_1.jpg", "4"])
        result = runner.invoke(main, ["rate", str(collection), "IMG_1.jpg", "none"])

        assert result.exit_code == 0
        assert "unrated" in result.output
        assert _stored(collection)["IMG_1"].rating is None

    def test_out_of_range(self, runner, collection: Path):
        result = runner.invoke(main, ["rate", str(collection), "IMG_1.jpg", "7"])

        assert result.exit_code == 1
        assert _stored(collection) == {}

    def test_not_a_number(self, runner, collection: Path):
        result = runner.invoke(main, ["rate", str(collection), "IMG_1.jpg", "five"])
        assert result.exit_code == 2


class TestResolve:
    """Tests for the resolve command."""

    def test_use_stored(self, runner, collection: Path, make_jpeg):
        make_jpeg(collection, "IMG_1.jpg", rating=5)
        runner.invoke(main, ["rate", str(collection), "IMG_1.jpg", "3"])

        result = runner.invoke(main, ["resolve", str(collection), "IMG_1.jpg", "--use", "stored"])

        assert result.exit_code == 0
        assert "overrule=yes" in result.output
        record = _stored(collection)["IMG_1"]
        assert (record.rating, record.overrule_file_rating) == (3, True)

    def test_use_embedded(self, runner, collection: Path, make_jpeg):
        make_jpeg(collection, "IMG_1.jpg", rating=5)
        runner.invoke(main, ["rate", str(collection), "IMG_1.jpg", "3"])

        result = runner.invoke(main, ["resolve", str(collection), "IMG_1", "--use", "embedded"])

        assert result.exit_code == 0
        assert _stored(collection)["IMG_1"].rating == 5

    def test_raw_kind(self, runner, collection: Path, make_jpeg, make_raw):
        make_jpeg(collection, "IMG_1.jpg", rating=5)
        make_raw(collection / "raw", "IMG_1.ARW", rating=1)
        runner.invoke(main, ["rate", str(collection), "IMG_1.jpg", "3"])

        result = runner.invoke(main, [
            "resolve", str(collection), "IMG_1.jpg", "--use", "embedded", "--kind", "raw-conflict",
        ])

        assert result.exit_code == 0
        assert _stored(collection)["IMG_1"].rating == 1

    def test_no_conflict(self, runner, collection: Path):
        result = runner.invoke(main, ["resolve", str(collection), "IMG_1.jpg", "--use", "stored"])

        assert result.exit_code == 1
        assert "No rating conflict" in result.output


class TestApply:
    """Tests for the apply command."""

    def test_dry_run(self, runner, collection: Path, make_jpeg):
        make_jpeg(collection, "a.jpg", rating=5)

        result = runner.invoke(main, ["apply", str(collection), "--dry-run"])

        assert result.exit_code == 0
        assert "JPG authoritative: 1" in result.output
        assert _stored(collection) == {}

    def test_apply(self, runner, collection: Path, make_jpeg):
        jpg = make_jpeg(collection, "a.jpg")
        runner.invoke(main, ["rate", str(collection), "a.jpg", "2"])

        result = runner.invoke(main, ["apply", str(collection)])

        assert result.exit_code == 0
        assert "File updates: 1" in result.output
        assert MetadataReader().read_rating(jpg) == 2

    def test_blocked(self, runner, collection: Path, make_jpeg):
        make_jpeg(collection, "a.jpg", rating=5)
        runner.invoke(main, ["rate", str(collection), "a.jpg", "2"])

        result = runner.invoke(main, ["apply", str(collection)])

        assert result.exit_code == 1
        assert "Blocked" in result.output


class TestImportAndOptions:
    """Tests for the import command and global options."""

    def test_import(self, runner, collection: Path, make_jpeg):
        make_jpeg(collection, "a.jpg", rating=5)

        result = runner.invoke(main, ["import", str(collection)])

        assert result.exit_code == 0
        assert "Imported 1 rating(s)" in result.output
        assert _stored(collection)["a"].rating == 5

    def test_config_option(self, runner, temp_dir: Path, make_jpeg):
        folder = temp_dir / "trip"
        (folder / "Negatives").mkdir(parents=True)
        config_path = temp_dir / "config.yaml"
        config_path.write_text(yaml.safe_dump({"storage": {"raw_folder": "negatives", "npo_folder": ".ratings"}}))

        result = runner.invoke(main, ["--config", str(config_path), "rate", str(folder), "a.jpg", "3"])

        assert result.exit_code == 0
        assert get_config().storage.raw_folder == "negatives"
        assert (folder / ".ratings" / "ratings.db").is_file()

    def test_verbose_sets_debug(self, runner, collection: Path):
        runner.invoke(main, ["--verbose", "status", str(collection)])

        cli.setup_logging.assert_called_once()
        assert cli.setup_logging.call_args.args[0] == "DEBUG"

    def test_serve(self, runner, mocker):
        run = mocker.patch("flask.Flask.run")

        result = runner.invoke(main, ["serve", "--port", "5999"])

        assert result.exit_code == 0
        run.assert_called_once_with(host="127.0.0.1", port=5999, debug=False)
