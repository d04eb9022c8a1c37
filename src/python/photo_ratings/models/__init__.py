"""Data models for photo-ratings."""

from photo_ratings.models.enums import RatingLabel, RatingSource, RatingStatus, Resolution
from photo_ratings.models.ratings import (
    RatingState,
    RatingsSnapshot,
    StoredRating,
    is_valid_rating,
    normalize_rating,
    validate_rating,
)

__all__ = [
    "RatingLabel",
    "RatingSource",
    "RatingStatus",
    "Resolution",
    "RatingState",
    "RatingsSnapshot",
    "StoredRating",
    "is_valid_rating",
    "normalize_rating",
    "validate_rating",
]
