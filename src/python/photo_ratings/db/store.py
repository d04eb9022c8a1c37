"""
Rating store and connection pool.

Each photo collection (a folder) has its own SQLite database inside a
hidden ``_npo`` folder. ``StorePool`` owns one engine per collection,
opened on first access and disposed when the collection is closed or the
application shuts down. ``RatingStore`` implements get / upsert /
reset-overrule on top of the pool.

Example:
    >>> with StorePool() as pool:
    ...     store = RatingStore(pool)
    ...     store.upsert("IMG_1234", "/photos/trip", 5, False)
    ...     store.get("/photos/trip")["IMG_1234"].rating
    5
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Generator, List, Optional, Union

from sqlalchemy import Engine, create_engine, select, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session, sessionmaker

from photo_ratings.config import Config, get_config
from photo_ratings.db.models import Base, RatingModel
from photo_ratings.exceptions import CollectionNotFoundError
from photo_ratings.models.ratings import StoredRating, validate_rating

logger = logging.getLogger(__name__)


def resolve_collection(folder: Union[str, Path]) -> Path:
    """
    Resolve a collection folder, failing fast if it is missing.

    Raises:
        CollectionNotFoundError: If the folder does not exist or is not a directory
    """
    path = Path(folder).expanduser()
    if not path.is_dir():
        raise CollectionNotFoundError(folder)
    return path.resolve()


class StorePool:
    """
    Pool of per-collection database engines.

    Engines are keyed by database path, created lazily and reused until
    ``close`` (collection switch) or ``close_all`` (shutdown).
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        self._engines: Dict[Path, Engine] = {}
        self._sessions: Dict[Path, sessionmaker] = {}
        self._lock = threading.Lock()

    def db_path(self, folder: Union[str, Path]) -> Path:
        """Path of the SQLite file for a collection."""
        storage = self.config.storage
        return resolve_collection(folder) / storage.npo_folder / storage.db_name

    def engine(self, folder: Union[str, Path]) -> Engine:
        """Get or create the engine of a collection."""
        db_path = self.db_path(folder)

        with self._lock:
            engine = self._engines.get(db_path)
            if engine is not None:
                return engine

            created = not db_path.exists()
            db_path.parent.mkdir(parents=True, exist_ok=True)

            engine = create_engine(f"sqlite:///{db_path}", echo=self.config.storage.echo)
            Base.metadata.create_all(engine)

            self._engines[db_path] = engine
            self._sessions[db_path] = sessionmaker(bind=engine, expire_on_commit=False)

            if created:
                logger.info("Created ratings database %s", db_path)
            else:
                logger.debug("Opened ratings database %s", db_path)

            return engine

    @contextmanager
    def session(self, folder: Union[str, Path]) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for one collection.

        Commits on success, rolls back on exception, always closes.
        """
        self.engine(folder)
        session = self._sessions[self.db_path(folder)]()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @property
    def open_collections(self) -> List[Path]:
        """Database paths that currently have an open engine."""
        return list(self._engines)

    def close(self, folder: Union[str, Path]) -> None:
        """Dispose the engine of one collection, if it is open."""
        storage = self.config.storage
        db_path = Path(folder).expanduser().resolve() / storage.npo_folder / storage.db_name

        with self._lock:
            engine = self._engines.pop(db_path, None)
            self._sessions.pop(db_path, None)

        if engine is not None:
            engine.dispose()
            logger.debug("Closed ratings database %s", db_path)

    def close_all(self) -> None:
        """Dispose every open engine."""
        with self._lock:
            engines = list(self._engines.items())
            self._engines.clear()
            self._sessions.clear()

        for db_path, engine in engines:
            engine.dispose()
            logger.debug("Closed ratings database %s", db_path)

    def __enter__(self) -> "StorePool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_all()


class RatingStore:
    """Keyed record store of stored ratings, one table per collection."""

    def __init__(self, pool: StorePool):
        self.pool = pool

    def get(self, folder: Union[str, Path]) -> Dict[str, StoredRating]:
        """
        Get every stored rating of a collection.

        Args:
            folder: Collection folder

        Returns:
            Mapping of photo identity to StoredRating (empty for a new collection)
        """
        with self.pool.session(folder) as session:
            rows = session.scalars(select(RatingModel)).all()
            return {row.id: row.to_record() for row in rows}

    def get_one(self, identity: str, folder: Union[str, Path]) -> Optional[StoredRating]:
        """Get the stored rating of one photo, or None."""
        with self.pool.session(folder) as session:
            row = session.get(RatingModel, identity)
            return row.to_record() if row else None

    def upsert(
        self,
        identity: str,
        folder: Union[str, Path],
        rating: Optional[int],
        overrule: Optional[bool] = None,
    ) -> StoredRating:
        """
        Create or replace the stored rating of a photo.

        The write is a single ``INSERT ... ON CONFLICT DO UPDATE`` statement
        committed before returning.

        Args:
            identity: Photo identity
            folder: Collection folder
            rating: Rating 1-5, or None to clear
            overrule: Overrule flag to store

        Returns:
            The record as written

        Raises:
            InvalidRatingError: If rating is not None and outside 1-5
            CollectionNotFoundError: If the folder does not exist
        """
        validate_rating(rating)
        updated_at = datetime.now()

        stmt = insert(RatingModel).values(
            id=identity,
            rating=rating,
            overrule_file_rating=overrule,
            updated_at=updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RatingModel.id],
            set_={
                "rating": stmt.excluded.rating,
                "overrule_file_rating": stmt.excluded.overrule_file_rating,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        with self.pool.session(folder) as session:
            session.execute(stmt)

        logger.debug("Stored rating %s for %s (overrule=%s)", rating, identity, overrule)
        return StoredRating(
            id=identity,
            rating=rating,
            overrule_file_rating=overrule,
            updated_at=updated_at,
        )

    def reset_overrule_flags(self, folder: Union[str, Path]) -> int:
        """
        Clear the overrule flag on every record of a collection.

        Ratings and timestamps are left untouched.

        Returns:
            Number of records whose flag was set before the reset
        """
        with self.pool.session(folder) as session:
            flagged = session.scalars(
                select(RatingModel.id).where(RatingModel.overrule_file_rating.is_(True))
            ).all()
            session.execute(
                update(RatingModel).values(overrule_file_rating=False),
                execution_options={"synchronize_session": False},
            )

        logger.info("Reset overrule flag on %d record(s) in %s", len(flagged), folder)
        return len(flagged)
