"""
CredentialStore: the user-record operations the session lifecycle needs.

The refresh token column is the only durable session state. Rotation goes
through swap_refresh_token(), a single conditional UPDATE, so two requests
presenting the same token cannot both win.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import or_, update

from models.user import User


class CredentialStore:
    def __init__(self, storage):
        self._storage = storage

    @property
    def _session(self):
        return self._storage.get_session()

    def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        return self._storage.get(User, user_id)

    def find_by_identifier(self, email: str | None = None, user_name: str | None = None) -> Optional[User]:
        """Return the user whose email or user name matches (either is enough)."""
        conditions = []
        if email:
            conditions.append(User.email == email.strip().lower())
        if user_name:
            conditions.append(User.user_name == user_name.strip().lower())
        if not conditions:
            return None
        return self._session.query(User).filter(or_(*conditions)).first()

    def user_exists(self, email: str | None = None, user_name: str | None = None) -> bool:
        return self.find_by_identifier(email=email, user_name=user_name) is not None

    def add_user(self, user: User) -> User:
        user.save()
        return user

    def _update(self, stmt) -> int:
        try:
            result = self._session.execute(stmt)
            self._storage.save()
        except Exception:
            self._storage.rollback()
            raise
        return result.rowcount

    def set_refresh_token(self, user_id: str, token: str) -> None:
        """Store token as the user's only live refresh token."""
        self._update(
            update(User).where(User.id == user_id).values(refresh_token=token)
        )

    def swap_refresh_token(self, user_id: str, expected: str, new: str) -> bool:
        """
        Replace the stored refresh token only if it still equals `expected`.
        Returns True when exactly one row changed.
        """
        changed = self._update(
            update(User)
            .where(User.id == user_id, User.refresh_token == expected)
            .values(refresh_token=new)
        )
        return changed == 1

    def clear_refresh_token(self, user_id: str) -> None:
        self._update(
            update(User).where(User.id == user_id).values(refresh_token=None)
        )

    def set_password_hash(self, user_id: str, password_hash: str, clear_sessions: bool = False) -> None:
        values = {"password_hash": password_hash}
        if clear_sessions:
            values["refresh_token"] = None
        self._update(update(User).where(User.id == user_id).values(**values))
