"""
Session lifecycle: login, refresh (with rotation), logout, password change.

A user holds at most one live refresh token, stored on the user row.
Access tokens are never stored; they simply expire. Refresh tokens are
single-use: every successful refresh replaces the stored value, so the
presented token can never be exchanged again.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from models.user import User
from services.errors import (
    BadRequestError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from utils.security import (
    ACCESS,
    REFRESH,
    TokenError,
    TokenSettings,
    hash_password,
    issue_token,
    verify_password,
    verify_token,
)

logger = logging.getLogger(__name__)

TOKEN_STORE_FAILURE = "Something went wrong while generating refresh and access token"
STALE_REFRESH_TOKEN = "Refresh token is expired or used"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginResult:
    user: User
    tokens: TokenPair


class SessionManager:
    def __init__(self, store, settings: TokenSettings, revoke_sessions_on_password_change: bool = True):
        self.store = store
        self.settings = settings
        self.revoke_sessions_on_password_change = revoke_sessions_on_password_change

    def _issue_pair(self, user: User) -> TokenPair:
        access = issue_token(
            user.id,
            ACCESS,
            self.settings,
            extra_claims={
                "email": user.email,
                "userName": user.user_name,
                "fullName": user.full_name,
            },
        )
        refresh = issue_token(user.id, REFRESH, self.settings)
        return TokenPair(access_token=access, refresh_token=refresh)

    def login(self, password: str, email: str | None = None, user_name: str | None = None) -> LoginResult:
        if not email and not user_name:
            raise BadRequestError("userName or email is required")

        user = self.store.find_by_identifier(email=email, user_name=user_name)
        if user is None:
            raise NotFoundError("User does not exist")

        if not verify_password(password, user.password_hash):
            logger.info("Rejected login for user %s: bad password", user.id)
            raise UnauthorizedError("Invalid user credentials")

        tokens = self._issue_pair(user)
        try:
            # Overwrites any previous refresh token: older sessions die here
            self.store.set_refresh_token(user.id, tokens.refresh_token)
        except SQLAlchemyError as exc:
            logger.exception("Could not persist refresh token for user %s", user.id)
            raise InternalError(TOKEN_STORE_FAILURE) from exc

        logger.info("User %s logged in", user.id)
        return LoginResult(user=user, tokens=tokens)

    def refresh(self, presented: str | None) -> TokenPair:
        if not presented:
            raise UnauthorizedError("Unauthorized request")

        try:
            claims = verify_token(presented, REFRESH, self.settings)
        except TokenError as exc:
            raise UnauthorizedError(str(exc))

        user = self.store.get_user(claims["sub"])
        if user is None:
            raise UnauthorizedError("Invalid refresh token")

        stored = user.refresh_token or ""
        if not hmac.compare_digest(stored.encode(), presented.encode()):
            logger.warning("Stale refresh token presented for user %s", user.id)
            raise UnauthorizedError(STALE_REFRESH_TOKEN)

        tokens = self._issue_pair(user)
        try:
            swapped = self.store.swap_refresh_token(user.id, presented, tokens.refresh_token)
        except SQLAlchemyError as exc:
            logger.exception("Could not rotate refresh token for user %s", user.id)
            raise InternalError(TOKEN_STORE_FAILURE) from exc
        if not swapped:
            # Another request rotated or cleared the token after our check
            logger.warning("Lost refresh rotation race for user %s", user.id)
            raise UnauthorizedError(STALE_REFRESH_TOKEN)

        logger.info("Rotated refresh token for user %s", user.id)
        return tokens

    def logout(self, user_id: str) -> None:
        self.store.clear_refresh_token(user_id)
        logger.info("User %s logged out", user_id)

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        user = self.store.get_user(user_id)
        if user is None:
            raise UnauthorizedError("Invalid access token")
        if not verify_password(old_password, user.password_hash):
            raise BadRequestError("Old password is incorrect")

        self.store.set_password_hash(
            user.id,
            hash_password(new_password),
            clear_sessions=self.revoke_sessions_on_password_change,
        )
        logger.info("User %s changed password", user.id)
