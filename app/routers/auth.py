# app/routers/auth.py
"""Account endpoints — sign up, sign in, sign out. Tokens are stateless JWTs."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.auth import AuthOut, CredentialsIn, UserOut
from app.schemas.base import MessageOut
from app.services import auth_service
from app.services.auth_service import AUTH_MESSAGES, AuthError, AuthErrorKind
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)

STATUS_BY_KIND = {
    AuthErrorKind.INVALID_EMAIL:  400,
    AuthErrorKind.WEAK_PASSWORD:  400,
    AuthErrorKind.WRONG_PASSWORD: 401,
    AuthErrorKind.EMAIL_IN_USE:   409,
    AuthErrorKind.UNKNOWN:        500,
}


def _auth_failure(e: AuthError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_KIND[e.kind], detail=e.message)


def _generic_failure(e: Exception) -> HTTPException:
    logger.error(f"[AUTH] Unexpected error: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=AUTH_MESSAGES[AuthErrorKind.UNKNOWN])


@router.post("/signup", response_model=AuthOut, status_code=201, summary="Create an account")
def signup(body: CredentialsIn, db: Session = Depends(get_db)):
    try:
        token, user = auth_service.sign_up(db, body.email, body.password)
    except AuthError as e:
        raise _auth_failure(e)
    except SQLAlchemyError as e:
        raise _generic_failure(e)
    return AuthOut(message="User created successfully", token=token, user=UserOut.model_validate(user))


@router.post("/signin", response_model=AuthOut, summary="Sign in and get a bearer token")
def signin(body: CredentialsIn, db: Session = Depends(get_db)):
    try:
        token, user = auth_service.sign_in(db, body.email, body.password)
    except AuthError as e:
        raise _auth_failure(e)
    except SQLAlchemyError as e:
        raise _generic_failure(e)
    return AuthOut(message="Login successful", token=token, user=UserOut.model_validate(user))


@router.post("/signout", response_model=MessageOut, summary="Sign out")
def signout():
    """Tokens are stateless; the client drops its copy."""
    return MessageOut(message="Signout complete.")
