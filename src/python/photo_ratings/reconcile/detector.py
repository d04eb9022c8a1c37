"""
Conflict detection between stored and embedded ratings.

Every function here is pure: it only looks at a ``RatingState`` (or a
whole ``RatingsSnapshot``) and performs no I/O.

The overrule flag is per photo. Once set, neither the JPG nor the RAW
comparison is reported as a conflict.
"""

from typing import Dict

from photo_ratings.models.enums import RatingStatus
from photo_ratings.models.ratings import RatingState, RatingsSnapshot


def _differs(stored, embedded) -> bool:
    return stored is not None and embedded is not None and stored != embedded


def has_jpg_conflict(state: RatingState) -> bool:
    """Stored and JPG ratings are both present, differ, and overrule is not set."""
    return _differs(state.stored, state.jpg) and not state.overrule


def has_raw_conflict(state: RatingState) -> bool:
    """Stored and RAW ratings are both present, differ, and overrule is not set."""
    return _differs(state.stored, state.raw) and not state.overrule


def has_jpg_raw_mismatch(state: RatingState) -> bool:
    """Nothing is stored yet, while JPG and RAW carry different ratings."""
    return (
        state.stored is None
        and state.jpg is not None
        and state.raw is not None
        and state.jpg != state.raw
    )


def is_blocking(state: RatingState) -> bool:
    """True if this photo must block a batch apply."""
    return has_jpg_conflict(state) or has_raw_conflict(state) or has_jpg_raw_mismatch(state)


def all_ratings_match(state: RatingState) -> bool:
    """JPG, RAW and stored ratings are all present and equal."""
    return (
        state.stored is not None
        and state.jpg == state.stored
        and state.raw == state.stored
    )


def classify(state: RatingState) -> RatingStatus:
    """
    Classify one photo's ratings.

    A stored rating that equals any present embedded rating is a ``MATCH``
    even when the other embedded rating differs; use ``is_blocking`` to
    find every disagreement.

    Args:
        state: Ratings of the photo

    Returns:
        The RatingStatus of the photo
    """
    if not state.has_any_rating:
        return RatingStatus.UNRATED

    if state.stored is None:
        if has_jpg_raw_mismatch(state):
            return RatingStatus.JPG_RAW_MISMATCH
        return RatingStatus.FILE_ONLY

    if state.jpg is None and state.raw is None:
        return RatingStatus.STORE_ONLY

    if state.stored in (state.jpg, state.raw):
        return RatingStatus.MATCH

    if state.overrule:
        return RatingStatus.RESOLVED

    if state.jpg is not None:
        return RatingStatus.JPG_CONFLICT
    return RatingStatus.RAW_CONFLICT


def classify_snapshot(snapshot: RatingsSnapshot) -> Dict[str, RatingStatus]:
    """Classify every photo of a collection, keyed by identity."""
    return {identity: classify(state) for identity, state in snapshot.states().items()}


def has_conflicts(snapshot: RatingsSnapshot) -> bool:
    """True if any photo of the collection blocks a batch apply."""
    return any(is_blocking(state) for state in snapshot.states().values())
