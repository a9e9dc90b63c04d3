from dataclasses import replace
from datetime import timedelta

import pytest

from models import storage
from models.user import User
from services.errors import BadRequestError, NotFoundError, UnauthorizedError
from services.session_manager import SessionManager
from utils.security import ACCESS, REFRESH, TokenSettings, issue_token, verify_password, verify_token

from conftest import DEFAULT_PASSWORD


@pytest.fixture
def manager(app_ctx, store, token_settings):
    return SessionManager(store, token_settings)


def _stored_token(user_id):
    return storage.get(User, user_id).refresh_token


def test_login_issues_pair_for_same_user(manager, user_factory, token_settings):
    user = user_factory(email="a@x.com")
    result = manager.login(DEFAULT_PASSWORD, email="a@x.com")

    access = verify_token(result.tokens.access_token, ACCESS, token_settings)
    refresh = verify_token(result.tokens.refresh_token, REFRESH, token_settings)
    assert access["sub"] == refresh["sub"] == user.id
    assert result.user.id == user.id


def test_login_persists_refresh_token(manager, user_factory):
    user = user_factory()
    result = manager.login(DEFAULT_PASSWORD, user_name=user.user_name)
    assert _stored_token(user.id) == result.tokens.refresh_token


def test_login_identifier_is_case_insensitive(manager, user_factory):
    user = user_factory(user_name="alice", email="alice@example.com")
    assert manager.login(DEFAULT_PASSWORD, user_name="Alice").user.id == user.id
    assert manager.login(DEFAULT_PASSWORD, email=" ALICE@example.com ").user.id == user.id


def test_login_requires_an_identifier(manager):
    with pytest.raises(BadRequestError):
        manager.login(DEFAULT_PASSWORD)


def test_login_unknown_user(manager, user_factory):
    user_factory()
    with pytest.raises(NotFoundError):
        manager.login(DEFAULT_PASSWORD, email="nobody@example.com")


def test_login_bad_password_leaves_store_untouched(manager, user_factory):
    user = user_factory()
    with pytest.raises(UnauthorizedError):
        manager.login("not-the-password", email=user.email)
    assert _stored_token(user.id) is None


def test_second_login_evicts_first_session(manager, user_factory):
    user = user_factory()
    first = manager.login(DEFAULT_PASSWORD, email=user.email)
    second = manager.login(DEFAULT_PASSWORD, email=user.email)

    with pytest.raises(UnauthorizedError):
        manager.refresh(first.tokens.refresh_token)
    assert manager.refresh(second.tokens.refresh_token).refresh_token


def test_refresh_rotates_and_rejects_reuse(manager, user_factory):
    user = user_factory()
    rt1 = manager.login(DEFAULT_PASSWORD, email=user.email).tokens.refresh_token

    rt2 = manager.refresh(rt1).refresh_token
    assert rt2 != rt1
    assert _stored_token(user.id) == rt2

    with pytest.raises(UnauthorizedError, match="expired or used"):
        manager.refresh(rt1)
    assert manager.refresh(rt2).refresh_token


@pytest.mark.parametrize("presented", [None, ""])
def test_refresh_requires_a_token(manager, presented):
    with pytest.raises(UnauthorizedError):
        manager.refresh(presented)


def test_refresh_surfaces_verification_reason(manager, user_factory, token_settings):
    user = user_factory()
    expired = issue_token(user.id, REFRESH, replace(token_settings, refresh_token_ttl=timedelta(0)))
    with pytest.raises(UnauthorizedError, match="Token expired"):
        manager.refresh(expired)

    with pytest.raises(UnauthorizedError, match="Malformed"):
        manager.refresh("garbage")


def test_refresh_rejects_access_token(manager, user_factory):
    user = user_factory()
    access = manager.login(DEFAULT_PASSWORD, email=user.email).tokens.access_token
    with pytest.raises(UnauthorizedError, match="signature"):
        manager.refresh(access)


def test_refresh_rejects_foreign_secret(app_ctx, store, user_factory, token_settings):
    user = user_factory()
    manager = SessionManager(store, token_settings)
    manager.login(DEFAULT_PASSWORD, email=user.email)

    foreign = TokenSettings(
        access_token_secret=token_settings.access_token_secret,
        access_token_ttl=token_settings.access_token_ttl,
        refresh_token_secret="attacker-refresh-secret-0123456789abcdef",
        refresh_token_ttl=token_settings.refresh_token_ttl,
    )
    forged = issue_token(user.id, REFRESH, foreign)
    with pytest.raises(UnauthorizedError):
        manager.refresh(forged)


def test_refresh_for_deleted_user(manager, user_factory):
    user = user_factory()
    rt = manager.login(DEFAULT_PASSWORD, email=user.email).tokens.refresh_token
    session = storage.get_session()
    session.delete(storage.get(User, user.id))
    storage.save()

    with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
        manager.refresh(rt)


def test_logout_clears_token_and_is_idempotent(manager, user_factory):
    user = user_factory()
    rt = manager.login(DEFAULT_PASSWORD, email=user.email).tokens.refresh_token

    manager.logout(user.id)
    assert _stored_token(user.id) is None
    manager.logout(user.id)
    assert _stored_token(user.id) is None

    with pytest.raises(UnauthorizedError):
        manager.refresh(rt)


def test_change_password(manager, user_factory):
    user = user_factory()
    rt = manager.login(DEFAULT_PASSWORD, email=user.email).tokens.refresh_token

    manager.change_password(user.id, DEFAULT_PASSWORD, "brand-new-password")

    stored = storage.get(User, user.id)
    assert verify_password("brand-new-password", stored.password_hash)
    assert stored.refresh_token is None
    with pytest.raises(UnauthorizedError):
        manager.refresh(rt)


def test_change_password_can_keep_sessions(app_ctx, store, token_settings, user_factory):
    user = user_factory()
    manager = SessionManager(store, token_settings, revoke_sessions_on_password_change=False)
    rt = manager.login(DEFAULT_PASSWORD, email=user.email).tokens.refresh_token

    manager.change_password(user.id, DEFAULT_PASSWORD, "brand-new-password")
    assert manager.refresh(rt).refresh_token


def test_change_password_wrong_old_password(manager, user_factory):
    user = user_factory()
    with pytest.raises(BadRequestError, match="Old password is incorrect"):
        manager.change_password(user.id, "wrong-old-password", "brand-new-password")
    assert verify_password(DEFAULT_PASSWORD, storage.get(User, user.id).password_hash)


def test_swap_only_succeeds_against_current_value(app_ctx, store, user_factory):
    user = user_factory()
    store.set_refresh_token(user.id, "rt-1")

    # Two racers both saw "rt-1"; only the first conditional write lands
    assert store.swap_refresh_token(user.id, "rt-1", "rt-2a") is True
    assert store.swap_refresh_token(user.id, "rt-1", "rt-2b") is False
    assert _stored_token(user.id) == "rt-2a"


def test_refresh_loses_race_when_token_rotated_concurrently(manager, store, user_factory, monkeypatch):
    user = user_factory()
    rt = manager.login(DEFAULT_PASSWORD, email=user.email).tokens.refresh_token

    real_swap = store.swap_refresh_token

    def rotated_elsewhere(user_id, expected, new):
        # A competing request wins between our equality check and our write
        store.set_refresh_token(user_id, "rotated-by-someone-else")
        return real_swap(user_id, expected, new)

    monkeypatch.setattr(store, "swap_refresh_token", rotated_elsewhere)
    with pytest.raises(UnauthorizedError, match="expired or used"):
        manager.refresh(rt)
    assert _stored_token(user.id) == "rotated-by-someone-else"
