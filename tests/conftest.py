"""Pytest configuration and shared fixtures."""

import os
import tempfile
from pathlib import Path
from typing import Callable, Generator, Optional

import piexif
import pytest
from PIL import Image

from photo_ratings.collection import RatingService
from photo_ratings.config import Config, set_config
from photo_ratings.db.store import RatingStore, StorePool
from photo_ratings.metadata.reader import MetadataReader
from photo_ratings.metadata.writer import MetadataWriter

SIDECAR_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<x:xmpmeta xmlns:x="adobe:ns:meta/">
  <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
    <rdf:Description rdf:about="" xmlns:xmp="http://ns.adobe.com/xap/1.0/">
      <xmp:Rating>{rating}</xmp:Rating>
    </rdf:Description>
  </rdf:RDF>
</x:xmpmeta>
"""


@pytest.fixture(autouse=True)
def default_config(monkeypatch) -> Config:
    """Isolate every test from config files and PHOTO_RATINGS_* variables."""
    for key in list(os.environ):
        if key.startswith("PHOTO_RATINGS_"):
            monkeypatch.delenv(key)
    config = Config()
    set_config(config)
    return config


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config() -> Config:
    """Configuration with a small worker pool."""
    config = Config()
    config.processing.max_workers = 2
    return config


@pytest.fixture
def collection(temp_dir: Path) -> Path:
    """An empty collection folder with a ``raw`` subfolder."""
    folder = temp_dir / "trip"
    (folder / "raw").mkdir(parents=True)
    return folder


@pytest.fixture
def make_jpeg() -> Callable[..., Path]:
    """Factory writing a small real JPEG, optionally with an EXIF rating."""

    def _make(folder: Path, name: str, rating: Optional[int] = None) -> Path:
        path = folder / name
        Image.new("RGB", (16, 12), color=(200, 120, 40)).save(path, "JPEG")
        if rating is not None:
            exif_bytes = piexif.dump({"0th": {piexif.ImageIFD.Rating: rating}})
            piexif.insert(exif_bytes, str(path))
        return path

    return _make


@pytest.fixture
def make_raw() -> Callable[..., Path]:
    """Factory writing a placeholder RAW file, optionally with a rated XMP sidecar."""

    def _make(folder: Path, name: str, rating: Optional[int] = None) -> Path:
        path = folder / name
        path.write_bytes(b"\x00RAWDATA\x00")
        if rating is not None:
            path.with_suffix(".xmp").write_text(SIDECAR_TEMPLATE.format(rating=rating), encoding="utf-8")
        return path

    return _make


@pytest.fixture
def pool(config: Config) -> Generator[StorePool, None, None]:
    """Store pool closed after the test."""
    with StorePool(config) as pool:
        yield pool


@pytest.fixture
def store(pool: StorePool) -> RatingStore:
    return RatingStore(pool)


@pytest.fixture
def reader(config: Config) -> MetadataReader:
    return MetadataReader(config)


@pytest.fixture
def writer(config: Config) -> MetadataWriter:
    return MetadataWriter(config)


@pytest.fixture
def service(config: Config, pool: StorePool) -> Generator[RatingService, None, None]:
    """Rating service sharing the test's store pool."""
    with RatingService(config, pool=pool) as service:
        yield service
