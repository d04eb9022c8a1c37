"""
List-view filtering and status tables for a collection snapshot.
"""

from typing import Iterable, List, Optional

import pandas as pd

from photo_ratings.models.ratings import RatingsSnapshot
from photo_ratings.reconcile.detector import (
    classify,
    has_jpg_conflict,
    has_jpg_raw_mismatch,
    has_raw_conflict,
)

STATUS_COLUMNS = ["identity", "file_name", "stored", "overrule", "jpg", "raw", "status"]


def filter_identities(
    snapshot: RatingsSnapshot,
    ratings: Optional[Iterable[int]] = None,
    include_unrated: bool = False,
    conflicts_only: bool = False,
) -> List[str]:
    """
    Select the photos to show in the list view.

    The stored rating is the photo's current rating. With ``conflicts_only``
    only photos with a JPG conflict, RAW conflict or JPG/RAW mismatch pass.
    A passing photo is shown when it is unrated and ``include_unrated`` is
    set, or when its rating is one of ``ratings``.

    Args:
        snapshot: Ratings of the collection
        ratings: Ratings to show (None shows every rated photo)
        include_unrated: Also show photos without a stored rating
        conflicts_only: Only show photos that need attention

    Returns:
        Matching identities, sorted
    """
    selected = set(ratings) if ratings is not None else None
    shown = []

    for identity, state in snapshot.states().items():
        if conflicts_only and not (
            has_jpg_conflict(state) or has_raw_conflict(state) or has_jpg_raw_mismatch(state)
        ):
            continue

        current = state.stored
        if current is None:
            if include_unrated:
                shown.append(identity)
        elif selected is None or current in selected:
            shown.append(identity)

    return shown


def snapshot_to_dataframe(snapshot: RatingsSnapshot) -> pd.DataFrame:
    """
    Build a status table with one row per photo.

    Rating columns use the nullable ``Int64`` dtype so unrated photos show
    as ``<NA>`` instead of turning the column into floats.

    Returns:
        DataFrame with columns identity, file_name, stored, overrule, jpg,
        raw, status
    """
    rows = [
        {
            "identity": identity,
            "file_name": snapshot.file_name(identity),
            "stored": state.stored,
            "overrule": state.overrule,
            "jpg": state.jpg,
            "raw": state.raw,
            "status": classify(state).value,
        }
        for identity, state in snapshot.states().items()
    ]

    df = pd.DataFrame(rows, columns=STATUS_COLUMNS)
    for column in ("stored", "jpg", "raw"):
        df[column] = df[column].astype("Int64")
    df["overrule"] = df["overrule"].astype(bool)
    return df
