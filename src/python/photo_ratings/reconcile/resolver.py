"""
Interactive resolution of rating conflicts.

When a photo becomes the active photo (or the user picks a conflict in the
list view) a ``ConflictDescriptor`` is produced and handed to the UI. The
user answers with one of three ``Resolution`` choices:

- USE_EMBEDDED: adopt the file's rating, overrule stays off so a later
  change in the file is flagged again
- USE_STORED: keep the stored rating and set the overrule flag until the
  next batch apply resets it
- IGNORE: write nothing; the conflict shows up again next time
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from photo_ratings.db.store import RatingStore
from photo_ratings.identity import derive_identity
from photo_ratings.models.enums import RatingStatus, Resolution
from photo_ratings.models.ratings import RatingState, RatingsSnapshot, StoredRating
from photo_ratings.reconcile.detector import has_jpg_conflict, has_raw_conflict

logger = logging.getLogger(__name__)

ConflictCallback = Callable[["ConflictDescriptor"], None]


@dataclass(frozen=True)
class ConflictDescriptor:
    """
    A detected disagreement between a stored and an embedded rating.

    Attributes:
        file_name: Filename of the photo
        embedded_rating: Rating found in the file (JPG EXIF or RAW sidecar)
        stored_rating: Rating in the rating store
        kind: RatingStatus.JPG_CONFLICT or RatingStatus.RAW_CONFLICT
    """
    file_name: str
    embedded_rating: int
    stored_rating: Optional[int]
    kind: RatingStatus = RatingStatus.JPG_CONFLICT

    @property
    def identity(self) -> str:
        return derive_identity(self.file_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON friendly dictionary."""
        return {
            "fileName": self.file_name,
            "embeddedRating": self.embedded_rating,
            "storedRating": self.stored_rating,
            "kind": self.kind.value,
        }


def detect_conflicts(file_name: str, state: RatingState) -> List[ConflictDescriptor]:
    """
    Every conflict of one photo: the JPG one first, then the RAW one.

    Returns:
        Zero, one or two descriptors
    """
    conflicts = []
    if has_jpg_conflict(state):
        conflicts.append(ConflictDescriptor(file_name, state.jpg, state.stored, RatingStatus.JPG_CONFLICT))
    if has_raw_conflict(state):
        conflicts.append(ConflictDescriptor(file_name, state.raw, state.stored, RatingStatus.RAW_CONFLICT))
    return conflicts


def detect_conflict(file_name: str, state: RatingState) -> Optional[ConflictDescriptor]:
    """The first conflict of a photo, or None."""
    conflicts = detect_conflicts(file_name, state)
    return conflicts[0] if conflicts else None


def list_conflicts(snapshot: RatingsSnapshot) -> List[ConflictDescriptor]:
    """All conflicts of a collection, for the list view."""
    conflicts = []
    for identity, state in snapshot.states().items():
        conflicts.extend(detect_conflicts(snapshot.file_name(identity), state))
    return conflicts


def resolve_conflict(
    store: RatingStore,
    folder: Union[str, Path],
    conflict: ConflictDescriptor,
    resolution: Union[Resolution, str],
) -> Optional[StoredRating]:
    """
    Apply the user's decision for one conflict.

    Args:
        store: Rating store of the collection
        folder: Collection folder
        conflict: The conflict being resolved
        resolution: The user's choice (a Resolution or its value)

    Returns:
        The written record, or None when the conflict is ignored

    Raises:
        ValueError: If ``resolution`` is not a known choice
    """
    resolution = Resolution(resolution)

    if resolution is Resolution.IGNORE:
        logger.info("Ignoring rating conflict for %s", conflict.file_name)
        return None

    if resolution is Resolution.USE_EMBEDDED:
        logger.info(
            "Resolving %s: using embedded rating %s (stored was %s)",
            conflict.file_name, conflict.embedded_rating, conflict.stored_rating,
        )
        return store.upsert(conflict.identity, folder, conflict.embedded_rating, overrule=False)

    logger.info(
        "Resolving %s: keeping stored rating %s over embedded %s",
        conflict.file_name, conflict.stored_rating, conflict.embedded_rating,
    )
    return store.upsert(conflict.identity, folder, conflict.stored_rating, overrule=True)


class ConflictNotifier:
    """
    Publishes conflicts of the photo being viewed to UI subscribers.

    Example:
        >>> notifier = ConflictNotifier()
        >>> notifier.subscribe(lambda conflict: print(conflict.to_dict()))
        >>> notifier.photo_activated("IMG_1.jpg", RatingState(stored=3, jpg=5))
    """

    def __init__(self):
        self._subscribers: List[ConflictCallback] = []

    def subscribe(self, callback: ConflictCallback) -> ConflictCallback:
        """Register a callback; returns it so this works as a decorator."""
        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: ConflictCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def photo_activated(self, file_name: str, state: RatingState) -> Optional[ConflictDescriptor]:
        """
        Check the newly active photo and notify subscribers of a conflict.

        Returns:
            The emitted descriptor, or None if the photo has no conflict
        """
        conflict = detect_conflict(file_name, state)
        if conflict is None:
            return None

        for callback in list(self._subscribers):
            try:
                callback(conflict)
            except Exception:
                logger.exception("Conflict subscriber %r failed for %s", callback, file_name)

        return conflict
