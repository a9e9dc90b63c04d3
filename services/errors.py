"""
Domain error taxonomy.

Services raise these; api/errors.py turns them into the JSON error envelope.
Each carries a machine-readable kind, the HTTP status it maps to and a
human message.
"""
from __future__ import annotations


class ApiError(Exception):
    kind = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class BadRequestError(ApiError):
    kind = "BAD_REQUEST"
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(ApiError):
    kind = "UNAUTHORIZED"
    status_code = 401
    default_message = "Unauthorized request"


class ForbiddenError(ApiError):
    kind = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class ConflictError(ApiError):
    kind = "CONFLICT"
    status_code = 409
    default_message = "Conflict"


class NotFoundError(ApiError):
    kind = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class InternalError(ApiError):
    pass
