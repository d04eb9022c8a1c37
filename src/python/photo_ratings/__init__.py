"""
photo-ratings - Rating reconciliation for a local photo organizer.

A photo's star rating (1-5) can live in three places: the collection's own
rating store, the JPG's EXIF data and the RAW file's XMP sidecar. This
package detects where they disagree, lets the user resolve conflicts, and
writes the authoritative rating back to every location.

Core Concepts:
- Identity: a photo's filename without its last extension (IMG_1.jpg and
  raw/IMG_1.ARW are the same photo)
- Collection: a folder of JPGs, with an optional ``raw`` subfolder and its
  own SQLite store in ``_npo/ratings.db``

Usage:
    from photo_ratings import RatingService

    with RatingService() as service:
        for conflict in service.conflicts("/photos/trip"):
            service.resolve("/photos/trip", conflict, "stored")
        summary = service.apply("/photos/trip")
        print(summary.to_dict())
"""

from photo_ratings.__version__ import __version__
from photo_ratings.collection import RatingService
from photo_ratings.config import Config, get_config, load_config
from photo_ratings.exceptions import (
    CollectionNotFoundError,
    InvalidRatingError,
    MetadataWriteError,
    PhotoRatingsError,
)
from photo_ratings.identity import derive_identity
from photo_ratings.models import RatingsSnapshot, RatingState, RatingStatus, Resolution, StoredRating
from photo_ratings.reconcile import ApplySummary, ConflictDescriptor, aggregate, batch_apply, classify
from photo_ratings.report import filter_identities, snapshot_to_dataframe

__all__ = [
    "__version__",
    # Service
    "RatingService",
    # Config
    "Config",
    "get_config",
    "load_config",
    # Errors
    "CollectionNotFoundError",
    "InvalidRatingError",
    "MetadataWriteError",
    "PhotoRatingsError",
    # Models
    "RatingState",
    "RatingStatus",
    "RatingsSnapshot",
    "Resolution",
    "StoredRating",
    "derive_identity",
    # Reconciliation
    "ApplySummary",
    "ConflictDescriptor",
    "aggregate",
    "batch_apply",
    "classify",
    # Reporting
    "filter_identities",
    "snapshot_to_dataframe",
]
