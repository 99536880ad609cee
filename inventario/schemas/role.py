# inventario/schemas/role.py
from datetime import datetime
from typing import Optional

from models.role import Role
from schemas.common import ORMBase


class RoleRequest(ORMBase):
    nombre: str
    descripcion: Optional[str] = None


class RoleInfo(ORMBase):
    id: int
    nombre: str
    descripcion: Optional[str] = None

    @classmethod
    def from_model(cls, role: Role) -> "RoleInfo":
        return cls(id=role.id, nombre=role.name, descripcion=role.description)


class RoleResponse(RoleInfo):
    fecha_creacion: Optional[datetime] = None
    es_rol_sistema: bool = False
    cantidad_usuarios: Optional[int] = None
    eliminable: Optional[bool] = None

    @classmethod
    def from_model(cls, role: Role, user_count: Optional[int] = None) -> "RoleResponse":
        eliminable = None
        if user_count is not None:
            eliminable = not role.is_system and user_count == 0
        return cls(
            id=role.id,
            nombre=role.name,
            descripcion=role.description,
            fecha_creacion=role.created_at,
            es_rol_sistema=role.is_system,
            cantidad_usuarios=user_count,
            eliminable=eliminable,
        )


class RoleUsersResponse(ORMBase):
    rol_id: int
    usuarios_activos: int
