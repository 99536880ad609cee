# inventario/models/role.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base

# Roles shipped with the system; they can be listed but never removed
SYSTEM_ROLES = ("ADMIN", "GERENTE", "EMPLEADO")


# Represents an authorization role assigned to users
class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column("nombre", String(50), unique=True, nullable=False, index=True)
    description = Column("descripcion", String(255), nullable=True)
    created_at = Column("fecha_creacion", DateTime(timezone=True), server_default=func.now())

    @property
    def is_system(self) -> bool:
        return (self.name or "").upper() in SYSTEM_ROLES
