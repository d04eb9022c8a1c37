"""Enumerations for photo-ratings models."""

from enum import Enum
from typing import Any, Optional


class RatingLabel(Enum):
    """
    Meaning of each star rating.

    The mapping is fixed; UI layers show ``description`` next to the stars.
    """
    DELETE = 1
    KEEP_ANYWAY = 2
    OK = 3
    GOOD = 4
    FAVORITE = 5

    @property
    def description(self) -> str:
        """Human readable meaning of the rating."""
        return _DESCRIPTIONS[self]

    @classmethod
    def from_rating(cls, rating: Any) -> Optional["RatingLabel"]:
        """Get the label for a rating value, or None when it is not a 1-5 rating."""
        from photo_ratings.models.ratings import normalize_rating

        rating = normalize_rating(rating)
        if rating is None:
            return None
        return cls(rating)


_DESCRIPTIONS = {
    RatingLabel.DELETE: "Mark for deletion",
    RatingLabel.KEEP_ANYWAY: "Kept despite flaws",
    RatingLabel.OK: "Ambivalent / OK",
    RatingLabel.GOOD: "Good",
    RatingLabel.FAVORITE: "Favorite",
}


class RatingSource(Enum):
    """The three places a photo's rating can live."""
    STORE = "store"
    JPG = "jpg"
    RAW = "raw"


class RatingStatus(Enum):
    """
    Classification of one photo's ratings across all sources.

    - UNRATED: no source has a rating
    - MATCH: the stored rating equals a present embedded rating
    - JPG_CONFLICT / RAW_CONFLICT: stored and embedded ratings differ
    - RESOLVED: they differ, but the stored rating overrules the files
    - JPG_RAW_MISMATCH: nothing stored, and JPG and RAW disagree
    - STORE_ONLY / FILE_ONLY: only one side carries a rating
    """
    UNRATED = "no-conflict/unrated"
    MATCH = "match"
    JPG_CONFLICT = "jpg-conflict"
    RAW_CONFLICT = "raw-conflict"
    RESOLVED = "resolved"
    JPG_RAW_MISMATCH = "jpg-raw-mismatch"
    STORE_ONLY = "store-only"
    FILE_ONLY = "file-only"

    @property
    def is_conflict(self) -> bool:
        """True for the classifications that need a user decision."""
        return self in (RatingStatus.JPG_CONFLICT, RatingStatus.RAW_CONFLICT)

    @property
    def blocks_apply(self) -> bool:
        """True for the classifications that block a batch apply."""
        return self.is_conflict or self is RatingStatus.JPG_RAW_MISMATCH


class Resolution(Enum):
    """User choices offered for a rating conflict."""
    USE_EMBEDDED = "embedded"
    USE_STORED = "stored"
    IGNORE = "ignore"
