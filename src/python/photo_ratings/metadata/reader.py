"""
Rating and metadata extraction for image files.

Ratings are read from:
- JPEG/TIFF files: EXIF Rating tag (0x4746) via piexif, then the embedded
  XMP packet, then an XMP sidecar
- RAW files: the XMP sidecar, then the RAW file's own EXIF via exifread

Files without any rating yield None (never 0). Batch reads tolerate
unreadable files: the failure is logged and the file reported as unrated.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import exifread
import piexif
from PIL import Image, UnidentifiedImageError
from PIL.ExifTags import TAGS

from photo_ratings.config import Config, get_config
from photo_ratings.exceptions import CollectionNotFoundError
from photo_ratings.identity import find_raw_folder, has_extension, is_raw_file
from photo_ratings.metadata.record import MetadataRecord
from photo_ratings.metadata.xmp import find_sidecar, read_embedded_xmp_rating, read_xmp_rating
from photo_ratings.models.ratings import normalize_rating

logger = logging.getLogger(__name__)

# Rating is stored in the 0th IFD with tag 18246 (Microsoft Rating)
RATING_TAG = 0x4746
EXIF_IFD_POINTER = 0x8769

EXIF_CONTAINER_EXTENSIONS = (".jpg", ".jpeg", ".tif", ".tiff")

# exifread tag name -> MetadataRecord tag name
EXIFREAD_TAG_MAP = {
    "Image Rating": "Rating",
    "Image Make": "Make",
    "Image Model": "Model",
    "EXIF LensModel": "LensModel",
    "EXIF LensMake": "LensMake",
    "EXIF DateTimeOriginal": "DateTimeOriginal",
    "Image DateTime": "DateTime",
    "EXIF ExifImageWidth": "ExifImageWidth",
    "EXIF ExifImageLength": "ExifImageHeight",
}


class MetadataReader:
    """Reads embedded ratings for single files and whole folders."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    @property
    def jpg_extensions(self):
        return self.config.formats.jpg_extensions

    @property
    def raw_extensions(self):
        return self.config.formats.raw_extensions

    def read_rating(self, file_path: Union[str, Path]) -> Optional[int]:
        """
        Read the embedded rating of one file.

        Args:
            file_path: Path to a JPG or RAW file

        Returns:
            Rating value (1-5), or None if the file carries no rating

        Raises:
            FileNotFoundError: If the file does not exist
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        if is_raw_file(file_path.name, self.raw_extensions):
            return self._read_raw_rating(file_path)

        if has_extension(file_path.name, EXIF_CONTAINER_EXTENSIONS):
            rating = _read_rating_from_exif(file_path)
            if rating is None:
                rating = read_embedded_xmp_rating(file_path)
            if rating is not None:
                return rating

        sidecar = find_sidecar(file_path)
        if sidecar is not None:
            return read_xmp_rating(sidecar)
        return None

    def _read_raw_rating(self, file_path: Path) -> Optional[int]:
        sidecar = find_sidecar(file_path)
        if sidecar is not None:
            rating = read_xmp_rating(sidecar)
            if rating is not None:
                return rating
        return _read_rating_with_exifread(file_path)

    def read_ratings_batch(
        self,
        folder: Union[str, Path],
        extensions: Optional[Iterable[str]] = None,
    ) -> Dict[str, Optional[int]]:
        """
        Read the embedded rating of every image in a folder.

        The folder is not searched recursively. A file that cannot be read
        is logged and reported as unrated; it never fails the batch.

        Args:
            folder: Folder to scan
            extensions: Extensions to include (defaults to the JPG extensions)

        Returns:
            Mapping of filename to rating (or None)

        Raises:
            CollectionNotFoundError: If the folder does not exist
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise CollectionNotFoundError(folder)

        extensions = list(extensions) if extensions is not None else self.jpg_extensions
        ratings: Dict[str, Optional[int]] = {}

        for entry in sorted(folder.iterdir()):
            if not entry.is_file() or not has_extension(entry.name, extensions):
                continue
            try:
                ratings[entry.name] = self.read_rating(entry)
            except OSError as e:
                logger.error("Failed to read rating from %s: %s", entry, e)
                ratings[entry.name] = None

        logger.debug("Read %d rating(s) from %s", len(ratings), folder)
        return ratings

    def find_raw_folder(self, folder: Union[str, Path]) -> Optional[Path]:
        """
        Find the RAW subfolder of a collection (name matched case-insensitively).

        Raises:
            CollectionNotFoundError: If the collection folder does not exist
        """
        if not Path(folder).is_dir():
            raise CollectionNotFoundError(folder)
        return find_raw_folder(folder, self.config.storage.raw_folder)

    def read_raw_ratings(self, folder: Union[str, Path]) -> Dict[str, Optional[int]]:
        """
        Read the ratings of every RAW file in a collection's RAW subfolder.

        Returns:
            Mapping of RAW filename to rating; empty if there is no RAW folder
        """
        raw_folder = self.find_raw_folder(folder)
        if raw_folder is None:
            return {}
        return self.read_ratings_batch(raw_folder, extensions=self.raw_extensions)

    def read_metadata(self, file_path: Union[str, Path]) -> MetadataRecord:
        """
        Extract the typed metadata record of one file.

        Uses exifread for RAW files and Pillow for everything else.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        file_path = Path(file_path)
        rating = self.read_rating(file_path)

        if is_raw_file(file_path.name, self.raw_extensions):
            tags = _tags_with_exifread(file_path)
        else:
            tags = _tags_with_pillow(file_path)

        tags["Rating"] = rating
        return MetadataRecord.from_tags(file_path.name, tags)


def _read_rating_from_exif(file_path: Path) -> Optional[int]:
    """
    Read rating from EXIF metadata.

    Args:
        file_path: Path to the image file.

    Returns:
        Rating value (1-5), or None if not found.
    """
    try:
        exif_dict = piexif.load(str(file_path))
    except Exception as e:
        logger.debug("piexif could not read %s: %s", file_path, e)
        return None

    return normalize_rating(exif_dict.get("0th", {}).get(RATING_TAG))


def _read_rating_with_exifread(file_path: Path) -> Optional[int]:
    try:
        with open(file_path, "rb") as f:
            tags = exifread.process_file(f, details=False)
    except Exception as e:
        logger.debug("exifread could not read %s: %s", file_path, e)
        return None

    tag = tags.get("Image Rating")
    if tag is None:
        return None
    return normalize_rating(tag.values[0] if getattr(tag, "values", None) else str(tag))


def _tags_with_exifread(file_path: Path) -> Dict[str, Any]:
    try:
        with open(file_path, "rb") as f:
            raw_tags = exifread.process_file(f, details=False)
    except Exception as e:
        logger.warning("exifread failed to extract EXIF from %s: %s", file_path, e)
        return {}

    return {
        name: str(raw_tags[key])
        for key, name in EXIFREAD_TAG_MAP.items()
        if key in raw_tags
    }


def _tags_with_pillow(file_path: Path) -> Dict[str, Any]:
    try:
        with Image.open(file_path) as img:
            exif = img.getexif()
            tags = {TAGS.get(tag_id, tag_id): value for tag_id, value in exif.items()}
            tags.update(
                {TAGS.get(tag_id, tag_id): value for tag_id, value in exif.get_ifd(EXIF_IFD_POINTER).items()}
            )
            tags.setdefault("ImageWidth", img.width)
            tags.setdefault("ImageHeight", img.height)
            return tags
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Pillow failed to extract EXIF from %s: %s", file_path, e)
        return {}
