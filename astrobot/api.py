"""API endpoints for AI build generation and build management.

All responses use the envelope:

    {"status": "success" | "error", "message": "...", "data": ...}

Routes (prefix /api/v1):
    GET    /healthcheck
    POST   /aibuilder
    POST   /builds
    GET    /builds
    GET    /builds/<build_id>
    PUT    /builds/<build_id>
    DELETE /builds/<build_id>
    GET    /components/<lien>
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from .builder import BuildAssembler
from .builds import BuildRepository, parse_component_slots
from .catalog import CatalogCache
from .errors import (
    AstroBotError,
    BuildNotFoundError,
    DocumentNotFoundError,
    InvalidInputError,
    PersistenceError,
)
from .models import UserInput

__all__ = ["api", "Services", "SERVICES_KEY"]

logger = logging.getLogger(__name__)

SERVICES_KEY = "astrobot"

# Create blueprint for API
api = Blueprint("api", __name__, url_prefix="/api/v1")


@dataclass
class Services:
    """Collaborators the endpoints work with, injected by create_app()."""

    assembler: BuildAssembler
    builds: BuildRepository
    cache: CatalogCache


def _services() -> Services:
    return current_app.extensions[SERVICES_KEY]


def _success(message: str, data: Any, status: int = 200) -> Tuple[Response, int]:
    return jsonify({"status": "success", "message": message, "data": data}), status


def _error(message: str, status: int, data: Any = None) -> Tuple[Response, int]:
    return jsonify({"status": "error", "message": message, "data": data}), status


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError("request body must be a JSON object")
    return data


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError(f"{key} must be a string")
    return value.strip() or None


@api.errorhandler(InvalidInputError)
def _handle_invalid_input(e: InvalidInputError) -> Tuple[Response, int]:
    return _error(str(e), 400)


@api.errorhandler(BuildNotFoundError)
@api.errorhandler(DocumentNotFoundError)
def _handle_not_found(e: AstroBotError) -> Tuple[Response, int]:
    return _error(str(e), 404)


@api.errorhandler(AstroBotError)
def _handle_internal(e: AstroBotError) -> Tuple[Response, int]:
    logger.exception("Request failed")
    return _error("Internal error", 500, {"error": str(e)})


@api.errorhandler(Exception)
def _handle_unexpected(e: Exception) -> Union[Response, HTTPException, Tuple[Response, int]]:
    if isinstance(e, HTTPException):
        return e
    logger.exception("Unexpected error")
    return _error("Internal error", 500, {"error": f"{type(e).__name__}: {e}"})


# ---------- HEALTHCHECK ----------


@api.route("/healthcheck", methods=["GET"])
def healthcheck() -> Tuple[Response, int]:
    return _success("ok", None)


# ---------- AI BUILDER ----------


@api.route("/aibuilder", methods=["POST"])
def generate_build() -> Tuple[Response, int]:
    """Generate a build with the AI builder.

    Request JSON:
        {
            "budget": 3000,
            "purpose": "Gaming",
            "prefs": "intel processor and water cooling",   // optional
            "user_id": "...",                                 // optional
            "name": "My gaming rig"                           // optional
        }

    Response JSON (data): the stored build, with null for every category
    that could not be resolved.
    """
    data = _json_body()
    user_input = UserInput.from_dict(data)
    owner = _optional_str(data, "user_id")
    name = _optional_str(data, "name")

    try:
        build = _services().assembler.generate_build(
            user_input, owner_user_id=owner, display_name=name
        )
    except PersistenceError as e:
        logger.error(str(e))
        return _error("Failed to create build", 500, {"error": str(e)})

    return _success("Build created successfully", build.to_dict())


# ---------- BUILD CRUD ----------


@api.route("/builds", methods=["POST"])
def create_build() -> Tuple[Response, int]:
    """Store a manually assembled build.

    Component slots are keyed by category ("cpu", "gpu", ...) or catalog
    label ("PROCESSEUR", ...). The total price is always computed.
    """
    data = _json_body()
    slots = parse_component_slots(data)
    build = _services().builds.create(
        slots,
        owner_user_id=_optional_str(data, "user_id"),
        display_name=_optional_str(data, "name"),
    )
    return _success("Build created successfully", build.to_dict())


@api.route("/builds", methods=["GET"])
def list_builds() -> Tuple[Response, int]:
    owner = request.args.get("user_id") or None
    builds = _services().builds.list(owner_user_id=owner)
    return _success("All build data retrieved successfully", [b.to_dict() for b in builds])


@api.route("/builds/<build_id>", methods=["GET"])
def show_build(build_id: str) -> Tuple[Response, int]:
    build = _services().builds.get(build_id)
    return _success("Build data retrieved successfully", build.to_dict())


@api.route("/builds/<build_id>", methods=["PUT"])
def update_build(build_id: str) -> Tuple[Response, int]:
    data = _json_body()
    slots = parse_component_slots(data)
    build = _services().builds.update(
        build_id, components=slots, display_name=_optional_str(data, "name")
    )
    return _success("Build updated successfully", build.to_dict())


@api.route("/builds/<build_id>", methods=["DELETE"])
def delete_build(build_id: str) -> Tuple[Response, int]:
    build = _services().builds.delete(build_id)
    return _success("Build deleted successfully", build.to_dict())


# ---------- COMPONENTS ----------


@api.route("/components/<path:lien>", methods=["GET"])
def show_component(lien: str) -> Tuple[Response, int]:
    record = _services().cache.get(lien)
    if record is None:
        return _error("Component not found", 404)
    return _success("Component retrieved successfully", record.to_dict())
