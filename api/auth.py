"""
Authentication blueprint:
- POST /users/register
- POST /users/login
- POST /users/logout
- POST /users/refresh-token
- POST /users/change-password

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and long-lived refresh tokens, signed with distinct secrets
- Keeps the one live refresh token on the user row and rotates it on every refresh
- Sends both tokens in the body and as http-only cookies
"""
from __future__ import annotations

from flask import Blueprint, request, g, current_app

from models import storage
from models.credential_store import CredentialStore
from models.user import User
from models.schemas.user import (
    UserRegisterSchema,
    UserLoginSchema,
    UserOutSchema,
    RefreshTokenSchema,
    ChangePasswordSchema,
)
from services.errors import ConflictError
from services.session_manager import SessionManager, TokenPair
from utils.decorators import jwt_required, ACCESS_COOKIE
from utils.security import TokenSettings, hash_password

from .errors import api_response

REFRESH_COOKIE = "refreshToken"

bp = Blueprint("auth", __name__)

user_register_schema = UserRegisterSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
refresh_token_schema = RefreshTokenSchema()
change_password_schema = ChangePasswordSchema()


def session_manager() -> SessionManager:
    return SessionManager(
        CredentialStore(storage),
        TokenSettings.from_config(current_app.config),
        revoke_sessions_on_password_change=current_app.config.get("REVOKE_SESSIONS_ON_PASSWORD_CHANGE", True),
    )


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config.get("COOKIE_SECURE", True),
        "samesite": "Lax",
    }


def _set_token_cookies(response, tokens: TokenPair):
    opts = _cookie_options()
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=int(current_app.config["ACCESS_TOKEN_TTL"].total_seconds()),
        **opts,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=int(current_app.config["REFRESH_TOKEN_TTL"].total_seconds()),
        **opts,
    )
    return response


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            fullName: { type: string }
            userName: { type: string }
            email: { type: string }
            password: { type: string }
            avatar: { type: string }
            coverImage: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: User already exists
    """
    data = user_register_schema.load(_json_body())

    store = CredentialStore(storage)
    if store.user_exists(email=data["email"], user_name=data["user_name"]):
        raise ConflictError("User already exists")

    user = User(
        full_name=data["full_name"].strip(),
        user_name=data["user_name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
        avatar=data["avatar"],
        cover_image=data.get("cover_image") or None,
    )
    store.add_user(user)

    return api_response(user_out_schema.dump(user), "User registered successfully", 201)


@bp.post("/login")
def login():
    """
    Login: returns the user plus access and refresh tokens (also set as cookies)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             userName: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      400:
        description: Missing identifier
      401:
        description: Invalid password
      404:
        description: Unknown user
    """
    data = user_login_schema.load(_json_body())
    result = session_manager().login(
        data["password"],
        email=data.get("email"),
        user_name=data.get("user_name"),
    )

    response, status = api_response(
        {
            "user": user_out_schema.dump(result.user),
            "accessToken": result.tokens.access_token,
            "refreshToken": result.tokens.refresh_token,
        },
        "User logged in successfully",
    )
    return _set_token_cookies(response, result.tokens), status


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: forgets the stored refresh token and clears both cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    session_manager().logout(g.current_user.id)

    response, status = api_response({}, "User logged out successfully")
    opts = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **opts)
    response.delete_cookie(REFRESH_COOKIE, **opts)
    return response, status


@bp.post("/refresh-token")
def refresh_token():
    """
    Exchange a refresh token (cookie or body) for a new token pair.
    The presented refresh token is spent.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns new tokens)
      401:
        description: Invalid, expired or reused refresh token
    """
    data = refresh_token_schema.load(_json_body())
    presented = request.cookies.get(REFRESH_COOKIE) or data.get("refresh_token")

    tokens = session_manager().refresh(presented)

    response, status = api_response(
        {"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token},
        "Access token refreshed",
    )
    return _set_token_cookies(response, tokens), status


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the current user's password
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             oldPassword: { type: string }
             newPassword: { type: string }
    responses:
      200:
        description: Password changed
      400:
        description: Old password is incorrect
    """
    data = change_password_schema.load(_json_body())
    session_manager().change_password(g.current_user.id, data["old_password"], data["new_password"])
    return api_response({}, "Password changed successfully")
