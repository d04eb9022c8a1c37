"""Reading and writing embedded ratings (EXIF, XMP sidecars)."""

from photo_ratings.metadata.reader import MetadataReader
from photo_ratings.metadata.record import MetadataRecord
from photo_ratings.metadata.writer import MetadataWriter, WriteJob, WriteResult

__all__ = [
    "MetadataReader",
    "MetadataRecord",
    "MetadataWriter",
    "WriteJob",
    "WriteResult",
]
