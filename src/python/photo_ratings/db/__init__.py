"""Persistence for stored ratings (one SQLite database per collection)."""

from photo_ratings.db.models import Base, RatingModel
from photo_ratings.db.store import RatingStore, StorePool

__all__ = ["Base", "RatingModel", "RatingStore", "StorePool"]
