"""
JSON API for the photo organizer UI.

Example:
    >>> app = create_app()
    >>> app.run(port=5200)
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from photo_ratings.collection import RatingService
from photo_ratings.config import Config, get_config
from photo_ratings.db.store import StorePool
from photo_ratings.exceptions import CollectionNotFoundError, InvalidRatingError
from photo_ratings.identity import derive_identity
from photo_ratings.metadata.reader import MetadataReader
from photo_ratings.metadata.writer import MetadataWriter
from photo_ratings.models.enums import RatingStatus, Resolution

logger = logging.getLogger(__name__)

EXTENSION_KEY = "photo_ratings"


class BadRequest(Exception):
    """Missing or malformed request field."""


def get_service() -> RatingService:
    return current_app.extensions[EXTENSION_KEY]


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise BadRequest("Request body must be a JSON object")
    return body


def _require(values: Dict[str, Any], *names: str) -> Tuple[Any, ...]:
    missing = [name for name in names if not values.get(name)]
    if missing:
        raise BadRequest(f"Missing required field(s): {', '.join(missing)}")
    return tuple(values[name] for name in names)


def _optional_rating(value: Any) -> Optional[int]:
    # JSON booleans are ints in Python; neither is a rating
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRatingError(value)
    return value


def create_app(
    config: Optional[Config] = None,
    pool: Optional[StorePool] = None,
    reader: Optional[MetadataReader] = None,
    writer: Optional[MetadataWriter] = None,
) -> Flask:
    """
    Create the Flask application.

    Args:
        config: Configuration (defaults to the global config)
        pool: Store pool to share (one is created if omitted)
        reader: Metadata reader override
        writer: Metadata writer override

    Returns:
        Configured Flask app with a RatingService in ``app.extensions``
    """
    config = config or get_config()

    app = Flask(__name__)
    app.extensions[EXTENSION_KEY] = RatingService(config, pool=pool, reader=reader, writer=writer)

    @app.errorhandler(BadRequest)
    def handle_bad_request(error):
        return jsonify({"success": False, "error": str(error)}), 400

    @app.errorhandler(InvalidRatingError)
    def handle_invalid_rating(error):
        return jsonify({"success": False, "error": str(error)}), 400

    @app.errorhandler(CollectionNotFoundError)
    def handle_missing_collection(error):
        return jsonify({"success": False, "error": str(error)}), 404

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        logger.error("Database error: %s", error)
        return jsonify({"success": False, "error": "Database error"}), 500

    @app.route("/api/ratings", methods=["GET"])
    def list_ratings():
        """Every stored rating of a collection."""
        (folder,) = _require(request.args, "folderPath")
        service = get_service()
        service.open(folder)

        records = service.store.get(folder)
        return jsonify({
            "success": True,
            "ratings": [records[identity].to_dict() for identity in sorted(records)],
        })

    @app.route("/api/ratings", methods=["POST"])
    def set_rating():
        """Store a user's rating (or clear it with null)."""
        body = _json_body()
        file_name, folder = _require(body, "fileName", "folderPath")
        rating = _optional_rating(body.get("rating"))

        record = get_service().rate(folder, file_name, rating)
        return jsonify({"success": True, **record.to_dict()})

    @app.route("/api/raw", methods=["POST"])
    def raw_ratings():
        """Ratings of the files in the collection's RAW subfolder."""
        (folder,) = _require(_json_body(), "folderPath")
        service = get_service()

        raw_folder = service.reader.find_raw_folder(folder)
        if raw_folder is None:
            return jsonify({"success": True, "hasRawFolder": False, "ratings": []})

        ratings = service.reader.read_raw_ratings(folder)
        return jsonify({
            "success": True,
            "hasRawFolder": True,
            "rawFolderPath": str(raw_folder),
            "ratings": [
                {"fileName": file_name, "rating": rating}
                for file_name, rating in ratings.items()
            ],
        })

    @app.route("/api/conflicts", methods=["GET"])
    def list_conflicts():
        """Stored-vs-embedded conflicts of a collection."""
        (folder,) = _require(request.args, "folderPath")
        conflicts = get_service().conflicts(folder)
        return jsonify({
            "success": True,
            "conflicts": [conflict.to_dict() for conflict in conflicts],
            "hasConflicts": bool(conflicts),
        })

    @app.route("/api/conflicts/resolve", methods=["POST"])
    def resolve():
        """Apply the user's decision for one conflict."""
        body = _json_body()
        folder, file_name, resolution = _require(body, "folderPath", "fileName", "resolution")

        try:
            resolution = Resolution(resolution)
            kind = RatingStatus(body["kind"]) if body.get("kind") else None
        except ValueError as e:
            raise BadRequest(str(e))
        if kind not in (None, RatingStatus.JPG_CONFLICT, RatingStatus.RAW_CONFLICT):
            raise BadRequest(f"Not a conflict kind: {kind.value}")

        # Ratings sent by the client are ignored; the collection is re-read
        service = get_service()
        conflict = service.find_conflict(folder, file_name, kind)
        if conflict is None:
            return jsonify({
                "success": False,
                "error": f"No rating conflict for {file_name}",
            }), 409

        record = service.resolve(folder, conflict, resolution)
        return jsonify({
            "success": True,
            "fileName": derive_identity(file_name),
            "conflict": conflict.to_dict(),
            "resolution": resolution.value,
            "record": record.to_dict() if record else None,
        })

    @app.route("/api/set-ratings", methods=["POST"])
    def set_ratings():
        """Run a batch apply over a collection."""
        (folder,) = _require(_json_body(), "folderPath")
        summary = get_service().apply(folder)

        if summary.blocked:
            return jsonify({
                "success": False,
                "blocked": True,
                "error": "Resolve rating conflicts before applying ratings",
            }), 409

        return jsonify({"success": summary.success, **summary.to_dict()})

    return app
