# inventario/models/users.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from database import Base

# Username of the bootstrap administrator, protected from deletion and deactivation
MAIN_ADMIN_USERNAME = "admin"


# Represents a user account with authentication details and system role
class User(Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column("password", String(255), nullable=False)
    full_name = Column("nombre_completo", String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=True, index=True)
    active = Column("activo", Boolean, nullable=False, default=True)
    created_at = Column("fecha_creacion", DateTime(timezone=True), server_default=func.now())

    role_id = Column("rol_id", Integer, ForeignKey("roles.id"), nullable=False, index=True)
    role = relationship("Role", lazy="joined", innerjoin=True)

    @property
    def role_name(self) -> str:
        return self.role.name if self.role else ""
