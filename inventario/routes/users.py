# inventario/routes/users.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models.stock import StockMovement
from models.users import User
from services.accounts import UserService
from services.providers import get_user_service
from utils.audit import write_log
from utils.tokenJWT import require_admin
import schemas.common as common_schemas
import schemas.user as user_schemas

router = APIRouter(prefix="/api/usuarios", tags=["Usuarios"])


def _serialize(users) -> List[user_schemas.UserResponse]:
    return [user_schemas.UserResponse.from_model(u) for u in users]


def _movement_count(db: Session, user_id: int) -> int:
    return db.query(func.count(StockMovement.id)).filter(StockMovement.user_id == user_id).scalar() or 0


@router.get("", response_model=List[user_schemas.UserResponse])
def list_users(
    activo: Optional[bool] = Query(None),
    service: UserService = Depends(get_user_service),
    _: User = Depends(require_admin),
):
    return _serialize(service.list(active=activo))


@router.get("/activos", response_model=List[user_schemas.UserResponse])
def list_active_users(service: UserService = Depends(get_user_service), _: User = Depends(require_admin)):
    return _serialize(service.list(active=True))


@router.get("/inactivos", response_model=List[user_schemas.UserResponse])
def list_inactive_users(service: UserService = Depends(get_user_service), _: User = Depends(require_admin)):
    return _serialize(service.list(active=False))


@router.get("/username/{username}", response_model=user_schemas.UserResponse)
def user_by_username(username: str, service: UserService = Depends(get_user_service),
                     _: User = Depends(require_admin)):
    return user_schemas.UserResponse.from_model(service.find_by_username(username))


@router.get("/rol/{rol_id}", response_model=List[user_schemas.UserResponse])
def users_by_role(rol_id: int, service: UserService = Depends(get_user_service), _: User = Depends(require_admin)):
    return _serialize(service.by_role(rol_id))


@router.get("/existe/{username}")
def user_exists(username: str, service: UserService = Depends(get_user_service), _: User = Depends(require_admin)):
    return {"username": username, "existe": service.username_exists(username)}


@router.get("/{usuario_id}", response_model=user_schemas.UserResponse)
def get_user(
    usuario_id: int,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
    _: User = Depends(require_admin),
):
    user = service.get(usuario_id)
    return user_schemas.UserResponse.from_model(user, _movement_count(db, usuario_id))


@router.post("", response_model=user_schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: user_schemas.UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    user = service.create(
        username=payload.username,
        password=payload.password,
        full_name=payload.nombre_completo,
        email=payload.email,
        active=payload.activo,
        role_id=payload.rol_id,
    )
    write_log(db, user=current_user, action="USER_CREATE", resource="usuarios", request=request,
              meta={"usuario_id": user.id, "username": user.username})
    return user_schemas.UserResponse.from_model(user, 0)


@router.put("/{usuario_id}", response_model=user_schemas.UserResponse)
def update_user(
    usuario_id: int,
    payload: user_schemas.UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    user = service.update(
        usuario_id,
        username=payload.username,
        full_name=payload.nombre_completo,
        email=payload.email,
        role_id=payload.rol_id,
        password=payload.password,
    )
    write_log(db, user=current_user, action="USER_UPDATE", resource="usuarios", request=request,
              meta={"usuario_id": user.id, "password_changed": bool(payload.password)})
    return user_schemas.UserResponse.from_model(user)


@router.patch("/{usuario_id}/activar", response_model=user_schemas.UserResponse)
def activate_user(
    usuario_id: int,
    request: Request,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    user = service.set_active(usuario_id, True)
    write_log(db, user=current_user, action="USER_ACTIVATE", resource="usuarios", request=request,
              meta={"usuario_id": usuario_id})
    return user_schemas.UserResponse.from_model(user)


@router.patch("/{usuario_id}/desactivar", response_model=user_schemas.UserResponse)
def deactivate_user(
    usuario_id: int,
    request: Request,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    user = service.set_active(usuario_id, False)
    write_log(db, user=current_user, action="USER_DEACTIVATE", resource="usuarios", request=request,
              meta={"usuario_id": usuario_id})
    return user_schemas.UserResponse.from_model(user)


@router.delete("/{usuario_id}", response_model=common_schemas.MessageResponse)
def delete_user(
    usuario_id: int,
    request: Request,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(require_admin),
):
    user = service.delete(usuario_id)
    write_log(db, user=current_user, action="USER_DELETE", resource="usuarios", request=request,
              meta={"usuario_id": usuario_id, "username": user.username})
    return common_schemas.MessageResponse(message=f"Usuario '{user.username}' eliminado correctamente")
