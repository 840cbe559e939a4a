"""Unit tests for account sign-up / sign-in and JWT handling."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import jwt
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch
from sqlalchemy.exc import IntegrityError
from app.config import settings
from app.models.user import User
from app.services import auth_service
from app.services.auth_service import (
    AuthError, AuthErrorKind, TokenError, create_token, decode_token,
    hash_password, normalize_email, verify_password,
)


@pytest.fixture(autouse=True)
def fast_bcrypt():
    with patch.object(settings, "BCRYPT_ROUNDS", 4):
        yield


def mock_db(existing=None):
    db = MagicMock()
    db.query.return_value.filter.return_value.first.return_value = existing

    def assign_id(user):
        user.id = 7
    db.refresh.side_effect = assign_id
    return db


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("secret124", hashed)

    def test_corrupt_hash_does_not_raise(self):
        assert verify_password("secret123", "not-a-bcrypt-hash") is False


class TestTokens:
    def test_round_trip(self):
        token = create_token(User(id=3, email="ana@office.io"))
        payload = decode_token(token)
        assert payload["id"] == 3
        assert payload["email"] == "ana@office.io"

    def test_expired_token_rejected(self):
        issued = datetime.now(timezone.utc) - timedelta(minutes=settings.JWT_EXPIRE_MINUTES + 1)
        token = create_token(User(id=3, email="ana@office.io"), now=issued)
        with pytest.raises(TokenError):
            decode_token(token)

    def test_foreign_signature_rejected(self):
        token = jwt.encode({"id": 3, "email": "x@y.io"}, "someone-elses-secret", algorithm="HS256")
        with pytest.raises(TokenError):
            decode_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(TokenError):
            decode_token("not.a.token")


class TestValidation:
    def test_email_normalized(self):
        assert normalize_email("  Ana@Office.IO ") == "ana@office.io"

    @pytest.mark.parametrize("email", ["", "ana", "ana@office", "a b@office.io", None])
    def test_bad_email(self, email):
        with pytest.raises(AuthError) as exc:
            normalize_email(email)
        assert exc.value.kind == AuthErrorKind.INVALID_EMAIL
        assert exc.value.message == "Invalid email address format."


class TestSignUp:
    def test_creates_user_and_token(self):
        db = mock_db()
        token, user = auth_service.sign_up(db, "Ana@Office.io", "secret123")

        db.add.assert_called_once_with(user)
        db.commit.assert_called_once()
        assert user.id == 7
        assert user.email == "ana@office.io"
        assert verify_password("secret123", user.password_hash)
        assert decode_token(token)["id"] == 7

    def test_weak_password(self):
        db = mock_db()
        with pytest.raises(AuthError) as exc:
            auth_service.sign_up(db, "ana@office.io", "12345")
        assert exc.value.kind == AuthErrorKind.WEAK_PASSWORD
        assert exc.value.message == "Password must be at least 6 characters long."
        db.add.assert_not_called()

    def test_overlong_password(self):
        with pytest.raises(AuthError) as exc:
            auth_service.sign_up(mock_db(), "ana@office.io", "x" * 73)
        assert exc.value.kind == AuthErrorKind.WEAK_PASSWORD

    def test_email_in_use(self):
        db = mock_db(existing=User(id=1, email="ana@office.io"))
        with pytest.raises(AuthError) as exc:
            auth_service.sign_up(db, "ana@office.io", "secret123")
        assert exc.value.kind == AuthErrorKind.EMAIL_IN_USE

    def test_concurrent_duplicate_rolls_back(self):
        db = mock_db()
        db.commit.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        with pytest.raises(AuthError) as exc:
            auth_service.sign_up(db, "ana@office.io", "secret123")
        assert exc.value.kind == AuthErrorKind.EMAIL_IN_USE
        db.rollback.assert_called_once()


class TestSignIn:
    def test_valid_credentials(self):
        user = User(id=4, email="ana@office.io", password_hash=hash_password("secret123"))
        token, signed_in = auth_service.sign_in(mock_db(existing=user), "ANA@office.io", "secret123")
        assert signed_in is user
        assert decode_token(token)["email"] == "ana@office.io"

    def test_wrong_password(self):
        user = User(id=4, email="ana@office.io", password_hash=hash_password("secret123"))
        with pytest.raises(AuthError) as exc:
            auth_service.sign_in(mock_db(existing=user), "ana@office.io", "nope-nope")
        assert exc.value.kind == AuthErrorKind.WRONG_PASSWORD

    def test_unknown_user_same_message(self):
        with pytest.raises(AuthError) as exc:
            auth_service.sign_in(mock_db(), "ghost@office.io", "secret123")
        assert exc.value.kind == AuthErrorKind.WRONG_PASSWORD
        assert exc.value.message == "Invalid email or password."
