from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnsupportedOperationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order: subclasses before their parents.
_STATUS_BY_ERROR = (
    (ValidationError, 400, "validation_error"),
    (AuthenticationError, 401, "authentication_error"),
    (ForbiddenError, 403, "forbidden"),
    (AuthorizationError, 403, "forbidden"),
    (NotFoundError, 404, "not_found"),
    (ConflictError, 409, "conflict"),
    (InvalidStateError, 409, "invalid_state"),
    (UnsupportedOperationError, 501, "not_implemented"),
)


def error_response(status: int, kind: str, message: str, **extra):
    body = {"success": False, "error": kind, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        for error_type, status, kind in _STATUS_BY_ERROR:
            if isinstance(e, error_type):
                break
        else:
            status, kind = 400, "domain_error"

        extra = {}
        if isinstance(e, ForbiddenError):
            extra = {
                "key": e.key,
                "required": e.required.value,
                "actual": e.actual.value if e.actual else None,
            }
        elif isinstance(e, ConflictError):
            extra = {"conflicting_id": e.conflicting_id}

        return error_response(status, kind, str(e), **extra)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return error_response(e.code or 500, "http_error", e.description or e.name)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error: %s", e)
        return error_response(500, "internal_error", "Internal server error")
