# app/services/auth_service.py
"""
Account sign-up / sign-in with bcrypt password hashes and JWT bearer tokens.

Token payload: {"id": <user id>, "email": <email>, "exp": <expiry>}
Every credential problem is raised as AuthError with a kind; the router maps the
kind to an HTTP status and the kind's user-facing message.
"""

import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
import bcrypt
import jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.config import settings
from app.models.user import User
from app.utils.logger import get_logger

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
BCRYPT_MAX_BYTES = 72


class AuthErrorKind(str, Enum):
    INVALID_EMAIL = "invalid-email"
    WRONG_PASSWORD = "wrong-password"
    EMAIL_IN_USE = "email-already-in-use"
    WEAK_PASSWORD = "weak-password"
    UNKNOWN = "unknown"


AUTH_MESSAGES = {
    AuthErrorKind.INVALID_EMAIL:  "Invalid email address format.",
    AuthErrorKind.WRONG_PASSWORD: "Invalid email or password.",
    AuthErrorKind.EMAIL_IN_USE:   "This email is already in use. Try logging in.",
    AuthErrorKind.WEAK_PASSWORD:  "Password must be at least 6 characters long.",
    AuthErrorKind.UNKNOWN:        "An unexpected error occurred. Please try again.",
}


class AuthError(Exception):
    def __init__(self, kind: AuthErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or AUTH_MESSAGES[kind]
        super().__init__(self.message)


class TokenError(Exception):
    """Bearer token missing, malformed, badly signed or expired."""


# ── Passwords ─────────────────────────────────────────────────────────────────
def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Corrupt hash or over-long password
        return False


# ── Tokens ────────────────────────────────────────────────────────────────────
def create_token(user: User, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        raise TokenError(str(e)) from e


# ── Validation ────────────────────────────────────────────────────────────────
def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise AuthError(AuthErrorKind.INVALID_EMAIL)
    return email


def validate_new_password(password: str):
    if not password or len(password) < settings.MIN_PASSWORD_LENGTH:
        raise AuthError(AuthErrorKind.WEAK_PASSWORD)
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise AuthError(AuthErrorKind.WEAK_PASSWORD, f"Password must be at most {BCRYPT_MAX_BYTES} bytes long.")


# ── Flows ─────────────────────────────────────────────────────────────────────
def sign_up(db: Session, email: str, password: str) -> tuple[str, User]:
    email = normalize_email(email)
    validate_new_password(password)

    if db.query(User).filter(User.email == email).first():
        raise AuthError(AuthErrorKind.EMAIL_IN_USE)

    user = User(email=email, password_hash=hash_password(password), created_at=datetime.utcnow())
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent sign-up for the same email
        db.rollback()
        raise AuthError(AuthErrorKind.EMAIL_IN_USE)
    db.refresh(user)

    logger.info(f"[AUTH] New account: {user.email} (id={user.id})")
    return create_token(user), user


def sign_in(db: Session, email: str, password: str) -> tuple[str, User]:
    email = normalize_email(email)
    user = db.query(User).filter(User.email == email).first()
    # Unknown user and wrong password share one message
    if not user or not verify_password(password or "", user.password_hash):
        logger.warning(f"[AUTH] Failed sign-in for {email}")
        raise AuthError(AuthErrorKind.WRONG_PASSWORD)

    logger.info(f"[AUTH] Sign-in: {user.email}")
    return create_token(user), user
