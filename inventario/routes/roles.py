# inventario/routes/roles.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from services.accounts import RoleService
from services.providers import get_role_service
from utils.audit import write_log
from utils.tokenJWT import require_admin
import schemas.common as common_schemas
import schemas.role as role_schemas

# Role administration is reserved for ADMIN
router = APIRouter(prefix="/api/roles", tags=["Roles"])


@router.get("", response_model=List[role_schemas.RoleResponse])
def list_roles(service: RoleService = Depends(get_role_service), _: User = Depends(require_admin)):
    return [role_schemas.RoleResponse.from_model(r, service.count_users(r.id, only_active=False))
            for r in service.list()]


@router.get("/nombre/{nombre}", response_model=role_schemas.RoleResponse)
def role_by_name(nombre: str, service: RoleService = Depends(get_role_service), _: User = Depends(require_admin)):
    return role_schemas.RoleResponse.from_model(service.find_by_name(nombre))


@router.get("/existe/{nombre}")
def role_exists(nombre: str, service: RoleService = Depends(get_role_service), _: User = Depends(require_admin)):
    return {"nombre": nombre, "existe": service.exists(nombre)}


@router.get("/{rol_id}/usuarios-activos", response_model=role_schemas.RoleUsersResponse)
def count_active_users(rol_id: int, service: RoleService = Depends(get_role_service),
                       _: User = Depends(require_admin)):
    return role_schemas.RoleUsersResponse(rol_id=rol_id, usuarios_activos=service.count_users(rol_id))


@router.get("/{rol_id}", response_model=role_schemas.RoleResponse)
def get_role(rol_id: int, service: RoleService = Depends(get_role_service), _: User = Depends(require_admin)):
    role = service.get(rol_id)
    return role_schemas.RoleResponse.from_model(role, service.count_users(rol_id, only_active=False))


@router.post("", response_model=role_schemas.RoleResponse, status_code=status.HTTP_201_CREATED)
def create_role(
    payload: role_schemas.RoleRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: RoleService = Depends(get_role_service),
    current_user: User = Depends(require_admin),
):
    role = service.create(payload.nombre, payload.descripcion)
    write_log(db, user=current_user, action="ROLE_CREATE", resource="roles", request=request,
              meta={"rol_id": role.id, "nombre": role.name})
    return role_schemas.RoleResponse.from_model(role, 0)


@router.put("/{rol_id}", response_model=role_schemas.RoleResponse)
def update_role(
    rol_id: int,
    payload: role_schemas.RoleRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: RoleService = Depends(get_role_service),
    current_user: User = Depends(require_admin),
):
    role = service.update(rol_id, payload.nombre, payload.descripcion)
    write_log(db, user=current_user, action="ROLE_UPDATE", resource="roles", request=request,
              meta={"rol_id": role.id})
    return role_schemas.RoleResponse.from_model(role)


@router.delete("/{rol_id}", response_model=common_schemas.MessageResponse)
def delete_role(
    rol_id: int,
    request: Request,
    db: Session = Depends(get_db),
    service: RoleService = Depends(get_role_service),
    current_user: User = Depends(require_admin),
):
    role = service.delete(rol_id)
    write_log(db, user=current_user, action="ROLE_DELETE", resource="roles", request=request,
              meta={"rol_id": rol_id, "nombre": role.name})
    return common_schemas.MessageResponse(message=f"Rol '{role.name}' eliminado correctamente")
