# inventario/models/category.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base


# Product category; owns zero or more products
class Category(Base):
    __tablename__ = "categorias"

    id = Column(Integer, primary_key=True, index=True)
    name = Column("nombre", String(100), unique=True, nullable=False, index=True)
    description = Column("descripcion", String(255), nullable=True)
    created_at = Column("fecha_creacion", DateTime(timezone=True), server_default=func.now())
