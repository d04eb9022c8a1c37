"""
Batch apply: propagate aggregated ratings to the store and the files.

Store-authoritative jobs become file writes (JPG variants in the collection
folder, RAW variants in its RAW subfolder, the latter through XMP
sidecars). JPG- and RAW-authoritative jobs become store upserts. Every job
is independent: failures are logged, collected and returned, never raised.
Once every job has settled the overrule flags of the collection are reset,
exactly once.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from photo_ratings.config import Config, get_config
from photo_ratings.db.store import RatingStore, resolve_collection
from photo_ratings.exceptions import PhotoRatingsError
from photo_ratings.identity import find_file_variants, find_raw_folder
from photo_ratings.metadata.writer import MetadataWriter, WriteJob
from photo_ratings.models.enums import RatingSource
from photo_ratings.models.ratings import RatingsSnapshot
from photo_ratings.reconcile.aggregator import AggregatedRatings, aggregate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyFailure:
    """A single job that failed: the file path or identity, and why."""
    target: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"target": self.target, "reason": self.reason}


@dataclass
class ApplySummary:
    """
    Outcome of a batch apply.

    Attributes:
        db_updates_count: Store upserts that succeeded
        file_updates_count: File writes that succeeded
        failures: Every job that failed
        blocked: True when conflicts prevented the run (nothing was written)
    """
    db_updates_count: int = 0
    file_updates_count: int = 0
    failures: List[ApplyFailure] = field(default_factory=list)
    blocked: bool = False

    @property
    def success(self) -> bool:
        return not self.blocked and not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dbUpdatesCount": self.db_updates_count,
            "fileUpdatesCount": self.file_updates_count,
            "failures": [failure.to_dict() for failure in self.failures],
            "blocked": self.blocked,
        }


def plan_file_writes(
    folder: Union[str, Path],
    aggregated: AggregatedRatings,
    config: Optional[Config] = None,
) -> List[WriteJob]:
    """
    Turn store-authoritative jobs into per-file write jobs.

    Only files that exist get a job; a photo without a RAW file simply has
    no RAW write.

    Args:
        folder: Collection folder
        aggregated: Output of ``aggregate``
        config: Configuration (extensions, RAW folder name)

    Returns:
        File write jobs
    """
    config = config or get_config()
    folder = Path(folder)
    raw_folder = find_raw_folder(folder, config.storage.raw_folder)

    jobs: List[WriteJob] = []
    for job in aggregated.store_authoritative:
        paths: List[Path] = []
        if RatingSource.JPG in job.targets:
            paths.extend(find_file_variants(folder, job.identity, config.formats.jpg_extensions))
        if RatingSource.RAW in job.targets and raw_folder is not None:
            paths.extend(find_file_variants(raw_folder, job.identity, config.formats.raw_extensions))

        jobs.extend(WriteJob(file_path=path, rating=job.rating) for path in paths)

    return jobs


def apply_ratings(
    folder: Union[str, Path],
    aggregated: AggregatedRatings,
    store: RatingStore,
    writer: MetadataWriter,
    config: Optional[Config] = None,
) -> ApplySummary:
    """
    Execute aggregated write-back jobs for a collection.

    Store upserts run first, then file writes (bounded concurrency). The
    overrule flags are reset only after every job has settled. A blocked
    aggregation writes nothing and leaves the flags alone.

    Args:
        folder: Collection folder
        aggregated: Output of ``aggregate``
        store: Rating store
        writer: Metadata writer for JPG/RAW files
        config: Configuration

    Returns:
        ApplySummary with counts and collected failures

    Raises:
        CollectionNotFoundError: If the folder does not exist
    """
    config = config or get_config()
    folder = resolve_collection(folder)

    if aggregated.blocked:
        logger.warning("Batch apply for %s skipped: resolve conflicts first", folder)
        return ApplySummary(blocked=True)

    summary = ApplySummary()

    for job in aggregated.jpg_authoritative + aggregated.raw_authoritative:
        try:
            store.upsert(job.identity, folder, job.rating, overrule=False)
            summary.db_updates_count += 1
        except (SQLAlchemyError, PhotoRatingsError) as e:
            logger.error("Failed to update database for %s: %s", job.identity, e)
            summary.failures.append(ApplyFailure(target=job.identity, reason=str(e)))

    write_jobs = plan_file_writes(folder, aggregated, config)
    results = writer.write_ratings(write_jobs, max_workers=config.processing.max_workers)

    for result in results:
        if result.success:
            summary.file_updates_count += 1
        else:
            summary.failures.append(ApplyFailure(target=str(result.file_path), reason=result.error or "unknown error"))

    store.reset_overrule_flags(folder)

    logger.info(
        "Applied %d database update(s) and %d file update(s) in %s (%d failure(s))",
        summary.db_updates_count, summary.file_updates_count, folder, len(summary.failures),
    )
    return summary


def batch_apply(
    folder: Union[str, Path],
    snapshot: RatingsSnapshot,
    has_conflicts: bool,
    store: RatingStore,
    writer: MetadataWriter,
    config: Optional[Config] = None,
) -> ApplySummary:
    """
    Align every rating source of a collection in one batch.

    Args:
        folder: Collection folder
        snapshot: Current ratings from the store, the JPGs and the RAW files
        has_conflicts: Caller's pre-computed conflict flag
        store: Rating store
        writer: Metadata writer
        config: Configuration

    Returns:
        ApplySummary (``blocked`` when conflicts exist)
    """
    aggregated = aggregate(snapshot, has_conflicts=has_conflicts)
    return apply_ratings(folder, aggregated, store, writer, config)
