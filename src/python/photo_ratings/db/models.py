"""
SQLAlchemy models for the per-collection ratings database.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from photo_ratings.models.ratings import StoredRating


class Base(DeclarativeBase):
    pass


class RatingModel(Base):
    __tablename__ = "ratings"

    # Photo identity (filename without extension)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    rating: Mapped[Optional[int]] = mapped_column(Integer)
    overrule_file_rating: Mapped[Optional[bool]] = mapped_column(Boolean)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    def to_record(self) -> StoredRating:
        """Detach the row into an immutable StoredRating."""
        return StoredRating(
            id=self.id,
            rating=self.rating,
            overrule_file_rating=self.overrule_file_rating,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<RatingModel id={self.id!r} rating={self.rating} overrule={self.overrule_file_rating}>"
