"""
Exception types raised by photo-ratings.

Per-file metadata failures during a batch apply are not raised; they are
collected into the apply summary instead. Only invalid input and missing
collections abort an operation.
"""


class PhotoRatingsError(Exception):
    """Base class for all photo-ratings errors."""


class InvalidRatingError(PhotoRatingsError, ValueError):
    """A rating outside 1..5 (and not None) was supplied."""

    def __init__(self, rating):
        self.rating = rating
        super().__init__(f"Rating must be an integer between 1 and 5, or None (got {rating!r})")


class CollectionNotFoundError(PhotoRatingsError, FileNotFoundError):
    """The collection folder does not exist or is not a directory."""

    def __init__(self, folder):
        self.folder = folder
        super().__init__(f"Collection folder not found: {folder}")


class MetadataWriteError(PhotoRatingsError):
    """Writing a rating into a file (or its sidecar) failed."""
