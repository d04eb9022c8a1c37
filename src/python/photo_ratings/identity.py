"""
Photo identity derivation and file variant lookup.

A photo identity is the filename with its final extension removed. All
files sharing that base name (``IMG_1234.jpg``, ``IMG_1234.ARW``) are the
same photo for rating purposes, whether they live in the collection folder
or in its ``raw`` subfolder.

Examples:
    >>> derive_identity("sunset.jpg")
    'sunset'
    >>> derive_identity("archive.tar.gz")
    'archive.tar'
    >>> derive_identity("README")
    'README'
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

JPG_EXTENSIONS = (".jpg", ".jpeg")
RAW_EXTENSIONS = (
    ".raw", ".dng", ".nef", ".cr2", ".cr3", ".crw",
    ".arw", ".raf", ".rw2", ".orf", ".pef",
)


def derive_identity(file_name: str) -> str:
    """
    Derive the photo identity from a filename.

    Only the text after the last ``.`` is removed. Names without a dot are
    returned unchanged; a dot file such as ``.hidden`` has an empty identity.

    Args:
        file_name: Bare filename (not a path)

    Returns:
        The photo identity
    """
    last_dot = file_name.rfind(".")
    if last_dot < 0:
        return file_name
    return file_name[:last_dot]


def _extension(file_name: str) -> str:
    last_dot = file_name.rfind(".")
    if last_dot <= 0:
        return ""
    return file_name[last_dot:].lower()


def has_extension(file_name: str, extensions: Iterable[str]) -> bool:
    """Check a filename against a set of dotted, lowercase extensions."""
    return _extension(file_name) in {ext.lower() for ext in extensions}


def is_jpg_file(file_name: str, extensions: Iterable[str] = JPG_EXTENSIONS) -> bool:
    """Check if a filename is a JPEG image."""
    return has_extension(file_name, extensions)


def is_raw_file(file_name: str, extensions: Iterable[str] = RAW_EXTENSIONS) -> bool:
    """Check if a filename is a camera RAW file."""
    return has_extension(file_name, extensions)


def find_file_variants(
    folder: Union[str, Path],
    identity: str,
    extensions: Iterable[str],
) -> List[Path]:
    """
    Find every file in ``folder`` carrying ``identity`` and one of ``extensions``.

    Extension matching is case-insensitive so ``IMG_1.JPG`` is found for
    identity ``IMG_1``. A missing folder yields no variants.

    Args:
        folder: Directory to look in (not searched recursively)
        identity: Photo identity
        extensions: Dotted extensions to accept

    Returns:
        Matching file paths sorted by name
    """
    folder = Path(folder)
    if not folder.is_dir():
        return []

    wanted = {ext.lower() for ext in extensions}
    variants = [
        entry for entry in folder.iterdir()
        if entry.is_file()
        and derive_identity(entry.name) == identity
        and _extension(entry.name) in wanted
    ]
    return sorted(variants)


def find_raw_folder(folder: Union[str, Path], raw_folder_name: str = "raw") -> Optional[Path]:
    """
    Find the RAW subfolder of a collection.

    The name is matched case-insensitively (``raw``, ``RAW``, ``Raw``).

    Returns:
        Path of the subfolder, or None if the collection has none
    """
    folder = Path(folder)
    if not folder.is_dir():
        return None

    wanted = raw_folder_name.lower()
    for entry in sorted(folder.iterdir()):
        if entry.is_dir() and entry.name.lower() == wanted:
            return entry
    return None
