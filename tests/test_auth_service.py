# tests/test_auth_service.py
import logging

import pytest

from stockroom.models.user import User
from stockroom.services import auth_service
from tests.factories import make_user


def test_kitchen_account_created_once_on_empty_database(db, caplog):
    with caplog.at_level(logging.WARNING, logger="stockroom.services.auth_service"):
        created = auth_service.ensure_kitchen_account(db)

    assert created.username == "admin"
    assert created.display_name == "Kitchen"
    assert "default password" in caplog.text
    assert auth_service.ensure_kitchen_account(db) is None
    assert db.query(User).count() == 1


def test_kitchen_account_skipped_when_accounts_exist(db, user):
    assert auth_service.ensure_kitchen_account(db) is None
    assert db.query(User).count() == 1


def test_usernames_are_case_insensitive(db):
    created = auth_service.create_user(db, "  Pastry ", "croissant")

    assert created.username == "pastry"
    assert created.display_name == "pastry"
    with pytest.raises(ValueError, match="already exists"):
        auth_service.create_user(db, "PASTRY", "croissant")
    assert auth_service.authenticate(db, "Pastry", "croissant").id == created.id


@pytest.mark.parametrize(
    "username, password, message",
    [
        ("   ", "croissant", "Username is required"),
        ("pastry", "pie", "at least 5 characters"),
    ],
)
def test_create_user_rejects(db, username, password, message):
    with pytest.raises(ValueError, match=message):
        auth_service.create_user(db, username, password)


def test_authenticate_stamps_last_login(db):
    make_user(db, username="grill", password="charcoal")

    assert auth_service.authenticate(db, "grill", "wrong") is None
    assert db.query(User).filter(User.username == "grill").one().last_login_at is None

    user = auth_service.authenticate(db, "grill", "charcoal")
    assert user.last_login_at is not None


def test_disabled_account_cannot_log_in(db):
    user = make_user(db, username="closed", password="shutters")
    user.active = False
    db.commit()

    assert auth_service.authenticate(db, "closed", "shutters") is None


def test_token_round_trip_and_tampering(user):
    token = auth_service.create_access_token(user.id, user.username)

    assert auth_service.decode_token(token)["sub"] == user.id
    assert auth_service.decode_token(token + "x") is None
