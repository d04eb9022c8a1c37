"""
Application-level access to a photo collection's ratings.

``RatingService`` is the object the UI layers (HTTP API, CLI) talk to. It
owns the store pool, the metadata reader/writer and a session cache of the
embedded ratings of each collection, so the (slow) batch metadata read
runs once per collection until something invalidates it.

Example:
    >>> with RatingService() as service:
    ...     snapshot = service.snapshot("/photos/trip")
    ...     for conflict in service.conflicts("/photos/trip"):
    ...         print(conflict.to_dict())
    ...     summary = service.apply("/photos/trip")
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from photo_ratings.config import Config, get_config
from photo_ratings.db.store import RatingStore, StorePool, resolve_collection
from photo_ratings.identity import derive_identity
from photo_ratings.metadata.reader import MetadataReader
from photo_ratings.metadata.writer import MetadataWriter
from photo_ratings.models.enums import RatingStatus, Resolution
from photo_ratings.models.ratings import RatingsSnapshot, StoredRating
from photo_ratings.reconcile.aggregator import AggregatedRatings, aggregate
from photo_ratings.reconcile.apply import ApplySummary, batch_apply
from photo_ratings.reconcile.detector import has_conflicts, has_jpg_raw_mismatch
from photo_ratings.reconcile.resolver import (
    ConflictDescriptor,
    ConflictNotifier,
    list_conflicts,
    resolve_conflict,
)

logger = logging.getLogger(__name__)


@dataclass
class EmbeddedRatings:
    """Embedded ratings of a collection, keyed by photo identity."""
    jpg: Dict[str, Optional[int]] = field(default_factory=dict)
    raw: Dict[str, Optional[int]] = field(default_factory=dict)
    file_names: Dict[str, str] = field(default_factory=dict)
    raw_file_names: Dict[str, str] = field(default_factory=dict)


def _by_identity(ratings: Dict[str, Optional[int]]) -> Dict[str, Optional[int]]:
    # img1.jpg and img1.jpeg share an identity; a rated variant wins
    by_identity: Dict[str, Optional[int]] = {}
    for file_name, rating in ratings.items():
        identity = derive_identity(file_name)
        if by_identity.get(identity) is None:
            by_identity[identity] = rating
    return by_identity


class RatingService:
    """Ratings of photo collections, backed by the store and the files."""

    def __init__(
        self,
        config: Optional[Config] = None,
        pool: Optional[StorePool] = None,
        reader: Optional[MetadataReader] = None,
        writer: Optional[MetadataWriter] = None,
    ):
        self.config = config or get_config()
        self.pool = pool or StorePool(self.config)
        self.store = RatingStore(self.pool)
        self.reader = reader or MetadataReader(self.config)
        self.writer = writer or MetadataWriter(self.config)
        self.notifier = ConflictNotifier()

        self._embedded: Dict[Path, EmbeddedRatings] = {}
        self._active_folder: Optional[Path] = None
        self._lock = threading.Lock()

    @property
    def active_folder(self) -> Optional[Path]:
        return self._active_folder

    def open(self, folder: Union[str, Path]) -> Path:
        """
        Make ``folder`` the active collection.

        Switching to another collection closes the previous collection's
        database and drops its cached embedded ratings.

        Raises:
            CollectionNotFoundError: If the folder does not exist
        """
        folder = resolve_collection(folder)
        previous = self._active_folder
        if previous is not None and previous != folder:
            logger.info("Switching collection %s -> %s", previous, folder)
            self.pool.close(previous)
            self.invalidate(previous)
        self._active_folder = folder
        return folder

    def embedded_ratings(self, folder: Union[str, Path], refresh: bool = False) -> EmbeddedRatings:
        """
        Embedded JPG and RAW ratings of a collection (cached per session).

        Args:
            folder: Collection folder
            refresh: Re-read the files even if cached
        """
        folder = resolve_collection(folder)

        with self._lock:
            cached = self._embedded.get(folder)
        if cached is not None and not refresh:
            return cached

        jpg_by_name = self.reader.read_ratings_batch(folder)
        raw_by_name = self.reader.read_raw_ratings(folder)

        embedded = EmbeddedRatings(
            jpg=_by_identity(jpg_by_name),
            raw=_by_identity(raw_by_name),
            file_names={derive_identity(name): name for name in reversed(list(jpg_by_name))},
            raw_file_names={derive_identity(name): name for name in reversed(list(raw_by_name))},
        )
        logger.info(
            "Read embedded ratings for %s: %d JPG, %d RAW file(s)",
            folder, len(jpg_by_name), len(raw_by_name),
        )

        with self._lock:
            self._embedded[folder] = embedded
        return embedded

    def invalidate(self, folder: Optional[Union[str, Path]] = None) -> None:
        """Drop cached embedded ratings of one collection, or of all."""
        with self._lock:
            if folder is None:
                self._embedded.clear()
            else:
                self._embedded.pop(Path(folder).expanduser().resolve(), None)

    def snapshot(self, folder: Union[str, Path], refresh: bool = False) -> RatingsSnapshot:
        """Current ratings of a collection from all three sources."""
        embedded = self.embedded_ratings(folder, refresh=refresh)
        file_names = dict(embedded.raw_file_names)
        file_names.update(embedded.file_names)
        return RatingsSnapshot(
            stored=self.store.get(folder),
            jpg=dict(embedded.jpg),
            raw=dict(embedded.raw),
            file_names=file_names,
        )

    def rate(self, folder: Union[str, Path], file_name: str, rating: Optional[int]) -> StoredRating:
        """
        Store a user's rating for a photo.

        Raises:
            InvalidRatingError: If the rating is not None and outside 1-5
        """
        record = self.store.upsert(derive_identity(file_name), folder, rating, overrule=False)
        logger.info("Rated %s: %s", file_name, rating)
        return record

    def activate(self, folder: Union[str, Path], file_name: str) -> Optional[ConflictDescriptor]:
        """
        Mark a photo as the one being viewed.

        Subscribers of ``notifier`` receive its conflict, if any.
        """
        snapshot = self.snapshot(folder)
        return self.notifier.photo_activated(file_name, snapshot.state(derive_identity(file_name)))

    def conflicts(self, folder: Union[str, Path]) -> List[ConflictDescriptor]:
        """Every stored-vs-embedded conflict of a collection."""
        return list_conflicts(self.snapshot(folder))

    def find_conflict(
        self,
        folder: Union[str, Path],
        file_name: str,
        kind: Optional[Union[RatingStatus, str]] = None,
    ) -> Optional[ConflictDescriptor]:
        """
        Look up the current conflict of one photo.

        Args:
            folder: Collection folder
            file_name: Filename or identity of the photo
            kind: Only match a JPG or a RAW conflict (any kind if None)

        Returns:
            The conflict built from the stored and embedded ratings, or None
        """
        identity = derive_identity(file_name)
        kind = RatingStatus(kind) if kind is not None else None
        for conflict in self.conflicts(folder):
            if conflict.identity == identity and (kind is None or conflict.kind is kind):
                return conflict
        return None

    def mismatches(self, folder: Union[str, Path]) -> List[str]:
        """Filenames whose JPG and RAW ratings disagree with nothing stored."""
        snapshot = self.snapshot(folder)
        return [
            snapshot.file_name(identity)
            for identity, state in snapshot.states().items()
            if has_jpg_raw_mismatch(state)
        ]

    def resolve(
        self,
        folder: Union[str, Path],
        conflict: ConflictDescriptor,
        resolution: Union[Resolution, str],
    ) -> Optional[StoredRating]:
        """Apply the user's decision for a conflict."""
        return resolve_conflict(self.store, folder, conflict, resolution)

    def import_embedded(self, folder: Union[str, Path]) -> int:
        """
        Create stored records from embedded ratings where none exist yet.

        Photos whose JPG and RAW ratings disagree are skipped; they need a
        user decision first.

        Returns:
            Number of records created
        """
        snapshot = self.snapshot(folder)
        created = 0

        for identity, state in snapshot.states().items():
            if identity in snapshot.stored or has_jpg_raw_mismatch(state):
                continue
            rating = state.jpg if state.jpg is not None else state.raw
            if rating is None:
                continue
            self.store.upsert(identity, folder, rating, overrule=False)
            created += 1

        logger.info("Imported %d embedded rating(s) into %s", created, folder)
        return created

    def aggregate(self, folder: Union[str, Path]) -> AggregatedRatings:
        """Compute the write-back jobs of a collection without running them."""
        return aggregate(self.snapshot(folder, refresh=True))

    def apply(self, folder: Union[str, Path]) -> ApplySummary:
        """
        Run a batch apply over a collection.

        Embedded ratings are re-read first and dropped from the cache after
        the run so the next snapshot sees the written values.
        """
        snapshot = self.snapshot(folder, refresh=True)
        try:
            return batch_apply(
                folder,
                snapshot,
                has_conflicts(snapshot),
                self.store,
                self.writer,
                self.config,
            )
        finally:
            self.invalidate(folder)

    def shutdown(self) -> None:
        """Close every collection database and clear caches."""
        self.pool.close_all()
        self.invalidate()
        self._active_folder = None

    def __enter__(self) -> "RatingService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
