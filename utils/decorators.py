from __future__ import annotations
from functools import wraps
from flask import request, g, current_app
from models import storage
from models.user import User
from services.errors import UnauthorizedError
from utils.security import ACCESS, TokenError, TokenSettings, verify_token

ACCESS_COOKIE = "accessToken"


def _presented_access_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(ACCESS_COOKIE)


def jwt_required():
    """
    Require a valid access token from the Authorization header or the
    accessToken cookie; the matching user lands on g.current_user.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _presented_access_token()
            if not token:
                raise UnauthorizedError("Unauthorized request")
            try:
                decoded = verify_token(token, ACCESS, TokenSettings.from_config(current_app.config))
            except TokenError as e:
                raise UnauthorizedError(str(e))

            user = storage.get(User, decoded.get("sub"))
            if not user:
                raise UnauthorizedError("Invalid access token")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator
