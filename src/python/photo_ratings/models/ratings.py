"""
Rating values and per-photo rating records.

Ratings are integers 1-5 or None. External metadata frequently uses 0 for
"no rating"; every value read from a file goes through
``normalize_rating`` so that 0 and a missing tag mean the same thing.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from photo_ratings.exceptions import InvalidRatingError
from photo_ratings.models.enums import RatingSource

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def normalize_rating(value: Any) -> Optional[int]:
    """
    Normalize a rating read from external metadata.

    ``None``, ``0``, negative values (Adobe "rejected") and anything that is
    not a whole number in 1-5 become ``None``.

    Args:
        value: Raw value (int, float, numeric string, exifread tag, ...)

    Returns:
        Rating in 1-5, or None
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric rating value %r", value)
        return None

    if not number.is_integer():
        return None

    rating = int(number)
    if MIN_RATING <= rating <= MAX_RATING:
        return rating
    if rating != 0:
        logger.debug("Ignoring out-of-range rating value %r", value)
    return None


def is_valid_rating(rating: Any) -> bool:
    """Check if a value is an acceptable rating for the store (1-5 or None)."""
    if rating is None:
        return True
    if isinstance(rating, bool) or not isinstance(rating, int):
        return False
    return MIN_RATING <= rating <= MAX_RATING


def validate_rating(rating: Any) -> Optional[int]:
    """
    Validate a rating supplied by a caller.

    Raises:
        InvalidRatingError: If the rating is not None and not an int in 1-5
    """
    if not is_valid_rating(rating):
        raise InvalidRatingError(rating)
    return rating


@dataclass(frozen=True)
class StoredRating:
    """
    A rating record persisted in a collection's rating store.

    Attributes:
        id: Photo identity
        rating: Stored rating (1-5) or None
        overrule_file_rating: When True the stored rating wins over embedded
            ratings and no conflict is reported until the flag is reset
        updated_at: Time of the last write
    """
    id: str
    rating: Optional[int]
    overrule_file_rating: Optional[bool]
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON friendly dictionary."""
        return {
            "id": self.id,
            "rating": self.rating,
            "overRuleFileRating": self.overrule_file_rating,
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class RatingState:
    """
    The ratings of one photo across the three sources.

    All ratings are normalized on construction.
    """
    stored: Optional[int] = None
    overrule: bool = False
    jpg: Optional[int] = None
    raw: Optional[int] = None

    def __post_init__(self):
        self.stored = normalize_rating(self.stored)
        self.jpg = normalize_rating(self.jpg)
        self.raw = normalize_rating(self.raw)
        self.overrule = bool(self.overrule)

    def rating_for(self, source: RatingSource) -> Optional[int]:
        """Get the rating held by one source."""
        if source is RatingSource.STORE:
            return self.stored
        if source is RatingSource.JPG:
            return self.jpg
        return self.raw

    @property
    def has_any_rating(self) -> bool:
        return any(r is not None for r in (self.stored, self.jpg, self.raw))


@dataclass
class RatingsSnapshot:
    """
    Current ratings of a whole collection from all three sources.

    Attributes:
        stored: Stored records keyed by identity
        jpg: JPG-embedded ratings keyed by identity
        raw: RAW/XMP ratings keyed by identity
        file_names: Display filename per identity (the JPG name where one
            exists, otherwise the RAW name)
    """
    stored: Dict[str, StoredRating] = field(default_factory=dict)
    jpg: Dict[str, Optional[int]] = field(default_factory=dict)
    raw: Dict[str, Optional[int]] = field(default_factory=dict)
    file_names: Dict[str, str] = field(default_factory=dict)

    def identities(self) -> List[str]:
        """Every identity known to any source, sorted."""
        return sorted(set(self.stored) | set(self.jpg) | set(self.raw) | set(self.file_names))

    def state(self, identity: str) -> RatingState:
        """Build the rating state of one photo."""
        record = self.stored.get(identity)
        return RatingState(
            stored=record.rating if record else None,
            overrule=bool(record.overrule_file_rating) if record else False,
            jpg=self.jpg.get(identity),
            raw=self.raw.get(identity),
        )

    def states(self) -> Dict[str, RatingState]:
        """Rating state of every photo, keyed by identity."""
        return {identity: self.state(identity) for identity in self.identities()}

    def file_name(self, identity: str) -> str:
        """Display filename for an identity (falls back to the identity)."""
        return self.file_names.get(identity, identity)
