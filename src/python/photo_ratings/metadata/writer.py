"""
Writing ratings back into files.

JPEG files get the rating in their EXIF block (tags Rating and
RatingPercent), inserted in place without re-encoding the image. Every
other file, RAW files in particular, gets an XMP sidecar that is created
when it does not exist yet; the RAW file itself is never modified.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import piexif

from photo_ratings.config import Config, get_config
from photo_ratings.exceptions import InvalidRatingError, MetadataWriteError
from photo_ratings.identity import is_jpg_file
from photo_ratings.metadata.reader import RATING_TAG
from photo_ratings.metadata.xmp import find_sidecar, sidecar_candidates, write_xmp_rating

logger = logging.getLogger(__name__)

RATING_PERCENT_TAG = 0x4749
RATING_PERCENT = {1: 1, 2: 25, 3: 50, 4: 75, 5: 99}


@dataclass(frozen=True)
class WriteJob:
    """A single rating write: put ``rating`` into ``file_path``."""
    file_path: Path
    rating: int


@dataclass
class WriteResult:
    """
    Outcome of one rating write.

    Attributes:
        file_path: File that was targeted
        rating: Rating that was written
        success: Whether the write succeeded
        error: Failure reason when ``success`` is False
    """
    file_path: Path
    rating: int
    success: bool
    error: Optional[str] = None


class MetadataWriter:
    """Writes ratings into JPEG EXIF blocks and XMP sidecars."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    def sidecar_path(self, file_path: Union[str, Path]) -> Path:
        """Sidecar that a write to ``file_path`` updates (existing one first)."""
        return find_sidecar(file_path) or sidecar_candidates(file_path)[0]

    def write_rating(self, file_path: Union[str, Path], rating: int) -> WriteResult:
        """
        Write a rating into a file's metadata.

        Args:
            file_path: JPEG or RAW file
            rating: Rating value (1-5)

        Returns:
            WriteResult; failures are reported, not raised

        Raises:
            InvalidRatingError: If rating is not an int in 1-5
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidRatingError(rating)

        file_path = Path(file_path)
        try:
            if not file_path.is_file():
                raise MetadataWriteError(f"File not found: {file_path}")

            if is_jpg_file(file_path.name, self.config.formats.jpg_extensions):
                _write_rating_to_exif(file_path, rating)
            else:
                write_xmp_rating(self.sidecar_path(file_path), rating)

        except MetadataWriteError as e:
            logger.error("Failed to write rating %d to %s: %s", rating, file_path, e)
            return WriteResult(file_path=file_path, rating=rating, success=False, error=str(e))

        logger.info("Wrote rating %d to %s", rating, file_path.name)
        return WriteResult(file_path=file_path, rating=rating, success=True)

    def target_path(self, file_path: Union[str, Path]) -> Path:
        """File that a write to ``file_path`` actually modifies."""
        file_path = Path(file_path)
        if is_jpg_file(file_path.name, self.config.formats.jpg_extensions):
            return file_path
        return self.sidecar_path(file_path)

    def write_ratings(
        self,
        jobs: Iterable[WriteJob],
        max_workers: Optional[int] = None,
    ) -> List[WriteResult]:
        """
        Run many rating writes with bounded concurrency.

        Every job runs independently; a failing file never stops the others.
        Jobs that modify the same file (RAW variants sharing one sidecar)
        run one after another in a single worker. The call returns only once
        all jobs have settled.

        Args:
            jobs: Writes to perform
            max_workers: Worker threads (defaults to ``processing.max_workers``)

        Returns:
            One WriteResult per job, in completion order
        """
        groups: Dict[Path, List[WriteJob]] = {}
        for job in jobs:
            groups.setdefault(self.target_path(job.file_path), []).append(job)
        if not groups:
            return []

        max_workers = max_workers or self.config.processing.max_workers
        results: List[WriteResult] = []

        if max_workers == 1:
            for group in groups.values():
                results.extend(self._run_jobs(group))
            return results

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self._run_jobs, group) for group in groups.values()]
            for future in as_completed(futures):
                results.extend(future.result())

        return results

    def _run_jobs(self, jobs: List[WriteJob]) -> List[WriteResult]:
        return [self._run_job(job) for job in jobs]

    def _run_job(self, job: WriteJob) -> WriteResult:
        try:
            return self.write_rating(job.file_path, job.rating)
        except Exception as e:
            logger.error("Unexpected error writing rating to %s: %s", job.file_path, e)
            return WriteResult(job.file_path, job.rating, success=False, error=str(e))


def _write_rating_to_exif(file_path: Path, rating: int) -> None:
    """
    Write rating to the EXIF block of a JPEG file.

    Raises:
        MetadataWriteError: If the EXIF block cannot be rebuilt or inserted
    """
    try:
        exif_dict = piexif.load(str(file_path))
    except Exception as e:
        logger.debug("Starting from empty EXIF for %s: %s", file_path, e)
        exif_dict = {"0th": {}, "Exif": {}, "GPS": {}, "Interop": {}, "1st": {}, "thumbnail": None}

    exif_dict.setdefault("0th", {})
    exif_dict["0th"][RATING_TAG] = rating
    exif_dict["0th"][RATING_PERCENT_TAG] = RATING_PERCENT[rating]

    try:
        exif_bytes = piexif.dump(exif_dict)
        piexif.insert(exif_bytes, str(file_path))
    except Exception as e:
        raise MetadataWriteError(f"Failed to write EXIF rating: {e}") from e
