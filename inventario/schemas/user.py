# inventario/schemas/user.py
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from models.users import MAIN_ADMIN_USERNAME, User
from schemas.common import ORMBase
from schemas.role import RoleInfo


# Schema for user creation requests
class UserCreate(ORMBase):
    username: str
    password: str
    nombre_completo: str
    email: Optional[EmailStr] = None
    activo: bool = True
    rol_id: int


# Schema for user updates; password is only changed when given
class UserUpdate(ORMBase):
    username: str
    password: Optional[str] = None
    nombre_completo: str
    email: Optional[EmailStr] = None
    rol_id: int


def initials(full_name: Optional[str], username: str) -> str:
    parts = (full_name or "").split()
    if len(parts) >= 2:
        return (parts[0][0] + parts[1][0]).upper()
    if parts:
        return parts[0][:2].upper()
    return username[:2].upper()


# Output schema for user details; the password hash never leaves the server
class UserResponse(ORMBase):
    id: int
    username: str
    nombre_completo: str
    email: Optional[str] = None
    activo: bool
    fecha_creacion: Optional[datetime] = None
    rol: RoleInfo
    iniciales: str
    es_admin_principal: bool = False
    cantidad_movimientos: Optional[int] = None
    eliminable: Optional[bool] = None

    @classmethod
    def from_model(cls, user: User, movement_count: Optional[int] = None) -> "UserResponse":
        is_main_admin = user.username == MAIN_ADMIN_USERNAME
        eliminable = None
        if movement_count is not None:
            eliminable = not is_main_admin and movement_count == 0
        return cls(
            id=user.id,
            username=user.username,
            nombre_completo=user.full_name,
            email=user.email,
            activo=user.active,
            fecha_creacion=user.created_at,
            rol=RoleInfo.from_model(user.role),
            iniciales=initials(user.full_name, user.username),
            es_admin_principal=is_main_admin,
            cantidad_movimientos=movement_count,
            eliminable=eliminable,
        )


# Schema for user authentication credentials (username or email)
class LoginRequest(ORMBase):
    username: str = Field(..., description="Nombre de usuario o email")
    password: str


class RefreshRequest(ORMBase):
    refresh_token: str


class ChangePasswordRequest(ORMBase):
    password_actual: str
    password_nuevo: str


# Schema for JWT authentication responses
class AuthResponse(ORMBase):
    success: bool = True
    message: str
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int
    expires_at: datetime
    session_id: str
    user: Optional[UserResponse] = None


# Result of checking a token
class TokenStatus(ORMBase):
    valid: bool
    username: Optional[str] = None
    role: Optional[str] = None
    session_id: Optional[str] = None
    expires_at: Optional[datetime] = None
