"""Helpers shared by the Flask controllers.

Identity (actor, role, team) comes from the upstream auth provider through
request headers/parameters; nothing here reads a session.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from .app_logger import get_logger

logger = get_logger("http")

_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


@dataclass(frozen=True)
class RequestContext:
    team_id: int
    actor_id: Optional[int]
    role: Role


def error_response(err: DomainError):
    status = 400
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(err, cls):
            status = code
            break
    return jsonify({"success": False, "error": type(err).__name__, "message": str(err)}), status


def json_endpoint(view):
    """Translate domain errors raised by services into JSON responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return error_response(e)
        except HTTPException:
            raise
        except Exception:
            logger.exception("Unhandled error in %s", request.path)
            return jsonify({"success": False, "error": "InternalError", "message": "Internal server error"}), 500

    return wrapper


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data


def _int_or_none(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def request_context(body: Optional[dict[str, Any]] = None) -> RequestContext:
    body = body or {}
    team_id = _int_or_none(
        request.headers.get("X-Team-Id") or request.args.get("teamId") or body.get("teamId"),
        "teamId",
    )
    if team_id is None:
        raise ValidationError("teamId is required")

    role_s = (request.headers.get("X-Role") or Role.COACH.value).lower()
    try:
        role = Role(role_s)
    except ValueError:
        raise AuthorizationError(f"Unknown role: {role_s}")

    actor_id = _int_or_none(request.headers.get("X-Actor-Id"), "X-Actor-Id")
    return RequestContext(team_id=team_id, actor_id=actor_id, role=role)


def ok(data: Any = None, status: int = 200):
    return jsonify({"success": True, "data": data}), status


def query_int(name: str) -> Optional[int]:
    return _int_or_none(request.args.get(name), name)


def parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    v = str(value or "").strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off", ""):
        return False
    raise ValidationError(f"{field_name} must be a boolean")


def id_list(value: Any) -> tuple:
    """List of ids from a JSON array or a comma separated string."""
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        return tuple(p.strip() for p in value.split(",") if p.strip())
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)
