"""
Typed metadata record returned by the metadata reader.

Tag dictionaries coming out of Pillow or exifread have no fixed shape.
``MetadataRecord.from_tags`` validates the handful of fields the organizer
uses so nothing downstream has to deal with raw tag values.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from photo_ratings.models.ratings import normalize_rating

logger = logging.getLogger(__name__)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


@dataclass(frozen=True)
class MetadataRecord:
    """
    Metadata of one image file.

    Attributes:
        file_name: Bare filename
        rating: Embedded rating (1-5) or None
        width: Image width in pixels
        height: Image height in pixels
        camera_make: Camera manufacturer
        camera_model: Camera model name
        lens: Lens model
        captured_at: When the photo was taken
    """
    file_name: str
    rating: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    lens: Optional[str] = None
    captured_at: Optional[datetime] = None

    @classmethod
    def from_tags(cls, file_name: str, tags: Mapping[str, Any]) -> "MetadataRecord":
        """
        Build a record from a flat tag dictionary.

        Tag names follow EXIF naming (``Rating``, ``Make``, ``Model``,
        ``LensModel``, ``DateTimeOriginal``, ``ImageWidth``/``ExifImageWidth``,
        ``ImageHeight``/``ExifImageHeight``). Invalid values become None.
        """
        return cls(
            file_name=file_name,
            rating=normalize_rating(tags.get("Rating")),
            width=_positive_int(tags.get("ExifImageWidth") or tags.get("ImageWidth")),
            height=_positive_int(tags.get("ExifImageHeight") or tags.get("ImageHeight")),
            camera_make=_clean_string(tags.get("Make")),
            camera_model=_clean_string(tags.get("Model")),
            lens=_clean_string(tags.get("LensModel") or tags.get("LensMake")),
            captured_at=_parse_datetime(
                tags.get("DateTimeOriginal") or tags.get("DateTime") or tags.get("DateTimeDigitized")
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def _positive_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _clean_string(value: Any) -> Optional[str]:
    """Strip whitespace and trailing nulls; empty strings become None."""
    if value is None:
        return None
    value = str(value).strip().rstrip("\x00").strip()
    return value or None


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an EXIF ``YYYY:MM:DD HH:MM:SS`` timestamp."""
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip(), EXIF_DATETIME_FORMAT)
    except (ValueError, TypeError) as e:
        logger.debug("Failed to parse datetime '%s': %s", value, e)
        return None
