# inventario/routes/auth.py
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from jose import JWTError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User
from services.accounts import UserService
from services.providers import get_user_service
from utils.audit import write_log
from utils.tokenJWT import (
    REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    get_token_claims,
    new_session_id,
)
import schemas.common as common_schemas
import schemas.user as user_schemas

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _invalid_credentials() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciales inválidas")


def _auth_response(user: User, message: str, session_id: str, with_refresh: bool = True) -> user_schemas.AuthResponse:
    expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    return user_schemas.AuthResponse(
        message=message,
        access_token=create_access_token(user, session_id),
        refresh_token=create_refresh_token(user, session_id) if with_refresh else None,
        expires_in=expires_in,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        session_id=session_id,
        user=user_schemas.UserResponse.from_model(user),
    )


# Authenticate user by username or email and issue JWT tokens
@router.post("/login", response_model=user_schemas.AuthResponse)
def login(
    payload: user_schemas.LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    user = service.authenticate(payload.username, payload.password)

    # Validate credentials and log failure on error
    if user is None:
        write_log(db, action="LOGIN", resource="auth", status="FAIL", request=request,
                  meta={"username": payload.username})
        raise _invalid_credentials()
    if not user.active:
        write_log(db, user=user, action="LOGIN", resource="auth", status="FAIL", request=request,
                  meta={"username": user.username, "reason": "inactive"})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="El usuario está inactivo")

    session_id = new_session_id()
    write_log(db, user=user, action="LOGIN", resource="auth", request=request,
              meta={"username": user.username, "session_id": session_id})
    return _auth_response(user, "Inicio de sesión exitoso", session_id)


# Exchange a refresh token for a new access token within the same session
@router.post("/refresh", response_model=user_schemas.AuthResponse)
def refresh(payload: user_schemas.RefreshRequest, db: Session = Depends(get_db)):
    try:
        claims = decode_token(payload.refresh_token, REFRESH)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token inválido o expirado")

    user = db.query(User).filter(User.username == claims["sub"]).first()
    if user is None or not user.active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token inválido o expirado")
    return _auth_response(user, "Token renovado exitosamente", claims.get("sid") or new_session_id(),
                          with_refresh=False)


# Retrieve current authenticated user details
@router.get("/me", response_model=user_schemas.UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return user_schemas.UserResponse.from_model(current_user)


@router.get("/validate", response_model=user_schemas.TokenStatus)
def validate(claims: dict = Depends(get_token_claims), current_user: User = Depends(get_current_user)):
    return user_schemas.TokenStatus(
        valid=True,
        username=current_user.username,
        role=current_user.role_name,
        session_id=claims.get("sid"),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )


# Tokens are stateless; logout only leaves a trace in the audit log
@router.post("/logout", response_model=common_schemas.MessageResponse)
def logout(
    request: Request,
    claims: dict = Depends(get_token_claims),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    write_log(db, user=current_user, action="LOGOUT", resource="auth", request=request,
              meta={"session_id": claims.get("sid")})
    return common_schemas.MessageResponse(message="Sesión cerrada exitosamente")


@router.post("/change-password", response_model=common_schemas.MessageResponse)
def change_password(
    payload: user_schemas.ChangePasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    service.change_password(current_user, payload.password_actual, payload.password_nuevo)
    write_log(db, user=current_user, action="CHANGE_PASSWORD", resource="auth", request=request)
    return common_schemas.MessageResponse(message="Contraseña actualizada exitosamente")
