# utils/tokenJWT.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User

ACCESS = "access"
REFRESH = "refresh"

# Authorization scheme; missing headers are reported as 401 below
bearer_scheme = HTTPBearer(auto_error=False)


def _encode(user: User, token_type: str, expires_delta: timedelta, session_id: str) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {
        "sub": user.username,
        "uid": user.id,
        "role": user.role_name,
        "type": token_type,
        "sid": session_id,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def new_session_id() -> str:
    return uuid.uuid4().hex


# Generate a new JWT access token
def create_access_token(user: User, session_id: Optional[str] = None, expires_delta: timedelta = None) -> str:
    return _encode(
        user, ACCESS,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        session_id or new_session_id(),
    )


# Generate a long-lived refresh token bound to the same session
def create_refresh_token(user: User, session_id: Optional[str] = None, expires_delta: timedelta = None) -> str:
    return _encode(
        user, REFRESH,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        session_id or new_session_id(),
    )


def decode_token(token: str, expected_type: str) -> dict:
    """Return the claims or raise JWTError when the token is invalid, expired or of another type."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise JWTError("Unexpected token type")
    return payload


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudieron validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_claims(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    if credentials is None:
        raise _credentials_exception()
    try:
        return decode_token(credentials.credentials, ACCESS)
    except JWTError:
        raise _credentials_exception()


# Retrieve the currently authenticated user based on the JWT token
def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db)
) -> User:
    user = db.query(User).filter(User.username == claims["sub"]).first()
    # Deactivated accounts lose access even with an unexpired token
    if user is None or not user.active:
        raise _credentials_exception()
    return user


# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles):
    allowed = {r.upper() for r in allowed_roles}

    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if allowed and current_user.role_name.upper() not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tiene permisos para realizar esta operación"
            )
        return current_user
    return _checker


# Shortcuts matching the access rules of the API
require_admin = role_required("ADMIN")
require_manager = role_required("ADMIN", "GERENTE")
require_staff = role_required("ADMIN", "GERENTE", "EMPLEADO")
