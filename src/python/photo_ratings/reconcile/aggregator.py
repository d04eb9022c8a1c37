"""
Aggregation of a collection's ratings into write-back jobs.

``aggregate`` decides, per photo, which source is authoritative and which
other sources must be aligned to it. It performs no I/O; ``apply`` turns
the result into database and file writes.

Authority rules, first match wins:

1. Overrule flag set and a stored rating present: the store wins and is
   written to every embedded source that is missing or differs.
2. Stored rating present and JPG or RAW missing: the store wins, same
   write-back.
3. Only a JPG rating: the JPG wins and is copied into the store.
4. Only a RAW rating: the RAW wins and is copied into the store.
5. Anything else: nothing to do.

The whole collection is refused (empty job lists) while any photo has an
unresolved conflict or a JPG/RAW mismatch.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from photo_ratings.models.enums import RatingSource
from photo_ratings.models.ratings import RatingState, RatingsSnapshot
from photo_ratings.reconcile.detector import has_conflicts as snapshot_has_conflicts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatingJob:
    """
    One photo's authoritative rating.

    Attributes:
        identity: Photo identity
        rating: Authoritative rating
        targets: Embedded sources that must receive the rating (only used
            for store-authoritative jobs)
    """
    identity: str
    rating: int
    targets: Tuple[RatingSource, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileName": self.identity,
            "rating": self.rating,
            "targets": [target.value for target in self.targets],
        }


@dataclass
class AggregatedRatings:
    """Write-back jobs grouped by authoritative source."""
    store_authoritative: List[RatingJob] = field(default_factory=list)
    jpg_authoritative: List[RatingJob] = field(default_factory=list)
    raw_authoritative: List[RatingJob] = field(default_factory=list)
    blocked: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.store_authoritative or self.jpg_authoritative or self.raw_authoritative)

    @property
    def job_count(self) -> int:
        return len(self.store_authoritative) + len(self.jpg_authoritative) + len(self.raw_authoritative)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storeAuthoritative": [job.to_dict() for job in self.store_authoritative],
            "jpgAuthoritative": [job.to_dict() for job in self.jpg_authoritative],
            "rawAuthoritative": [job.to_dict() for job in self.raw_authoritative],
            "blocked": self.blocked,
        }


def _stale_targets(state: RatingState) -> Tuple[RatingSource, ...]:
    """Embedded sources whose rating is missing or differs from the stored one."""
    return tuple(
        source for source in (RatingSource.JPG, RatingSource.RAW)
        if state.rating_for(source) != state.stored
    )


def authority_for(identity: str, state: RatingState) -> Tuple[Optional[RatingSource], Optional[RatingJob]]:
    """
    Decide the authoritative source of one photo.

    Assumes the photo is not blocking (see ``detector.is_blocking``).

    Returns:
        (source, job), or (None, None) when nothing has to be written
    """
    stored, jpg, raw = state.stored, state.jpg, state.raw

    if stored is not None and (state.overrule or jpg is None or raw is None):
        targets = _stale_targets(state)
        if not targets:
            return None, None
        return RatingSource.STORE, RatingJob(identity, stored, targets)

    if jpg is not None and raw is None and stored is None:
        return RatingSource.JPG, RatingJob(identity, jpg)

    if raw is not None and jpg is None and stored is None:
        return RatingSource.RAW, RatingJob(identity, raw)

    return None, None


def aggregate(snapshot: RatingsSnapshot, has_conflicts: Optional[bool] = None) -> AggregatedRatings:
    """
    Partition a collection's photos by authoritative source.

    Args:
        snapshot: Current ratings of every photo
        has_conflicts: Pre-computed conflict flag from the caller. A true
            value blocks the run; the snapshot is checked regardless.

    Returns:
        AggregatedRatings; all lists empty and ``blocked`` set when any
        photo has an unresolved conflict
    """
    if has_conflicts or snapshot_has_conflicts(snapshot):
        logger.warning("Cannot aggregate ratings: conflicts exist")
        return AggregatedRatings(blocked=True)

    result = AggregatedRatings()
    buckets = {
        RatingSource.STORE: result.store_authoritative,
        RatingSource.JPG: result.jpg_authoritative,
        RatingSource.RAW: result.raw_authoritative,
    }

    for identity, state in snapshot.states().items():
        source, job = authority_for(identity, state)
        if job is not None:
            buckets[source].append(job)

    logger.debug(
        "Aggregated ratings: %d store, %d jpg, %d raw",
        len(result.store_authoritative), len(result.jpg_authoritative), len(result.raw_authoritative),
    )
    return result
