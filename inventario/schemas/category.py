# inventario/schemas/category.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from models.category import Category
from schemas.common import ORMBase


# Request body for creating or updating a category
class CategoryRequest(ORMBase):
    nombre: str = Field(..., description="Nombre único de la categoría")
    descripcion: Optional[str] = None


class CategoryInfo(ORMBase):
    id: int
    nombre: str
    descripcion: Optional[str] = None

    @classmethod
    def from_model(cls, category: Category) -> "CategoryInfo":
        return cls(id=category.id, nombre=category.name, descripcion=category.description)


class CategoryResponse(CategoryInfo):
    fecha_creacion: Optional[datetime] = None
    cantidad_productos: Optional[int] = None
    eliminable: Optional[bool] = None

    @classmethod
    def from_model(cls, category: Category, product_count: Optional[int] = None) -> "CategoryResponse":
        return cls(
            id=category.id,
            nombre=category.name,
            descripcion=category.description,
            fecha_creacion=category.created_at,
            cantidad_productos=product_count,
            eliminable=None if product_count is None else product_count == 0,
        )


class CategoryExistsResponse(ORMBase):
    nombre: str
    existe: bool


class CategoryCountResponse(ORMBase):
    categoria_id: int
    cantidad_productos: int
