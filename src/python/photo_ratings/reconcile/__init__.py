"""Rating reconciliation: conflict detection, resolution and batch apply."""

from photo_ratings.reconcile.aggregator import AggregatedRatings, RatingJob, aggregate
from photo_ratings.reconcile.apply import ApplyFailure, ApplySummary, apply_ratings, batch_apply
from photo_ratings.reconcile.detector import (
    all_ratings_match,
    classify,
    classify_snapshot,
    has_conflicts,
    has_jpg_conflict,
    has_jpg_raw_mismatch,
    has_raw_conflict,
    is_blocking,
)
from photo_ratings.reconcile.resolver import (
    ConflictDescriptor,
    ConflictNotifier,
    detect_conflict,
    list_conflicts,
    resolve_conflict,
)

__all__ = [
    "AggregatedRatings",
    "ApplyFailure",
    "ApplySummary",
    "ConflictDescriptor",
    "ConflictNotifier",
    "RatingJob",
    "aggregate",
    "all_ratings_match",
    "apply_ratings",
    "batch_apply",
    "classify",
    "classify_snapshot",
    "detect_conflict",
    "has_conflicts",
    "has_jpg_conflict",
    "has_jpg_raw_mismatch",
    "has_raw_conflict",
    "is_blocking",
    "list_conflicts",
    "resolve_conflict",
]
