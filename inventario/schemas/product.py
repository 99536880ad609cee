# inventario/schemas/product.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from models.product import Product
from schemas.category import CategoryInfo
from schemas.common import ORMBase


def price_band(price: Optional[Decimal]) -> str:
    if price is None:
        return "Sin precio"
    if price <= Decimal("50.00"):
        return "Económico"
    if price <= Decimal("200.00"):
        return "Intermedio"
    if price <= Decimal("1000.00"):
        return "Alto"
    return "Premium"


def rotation(total_movements: int, days_idle: Optional[int]) -> str:
    if not total_movements:
        return "Sin movimientos"
    if days_idle is None:
        return "Sin información"
    if days_idle <= 7 and total_movements >= 10:
        return "Alta"
    if days_idle <= 30 and total_movements >= 5:
        return "Media"
    return "Baja"


# Shared attributes of product requests
class ProductBase(ORMBase):
    nombre: str = Field(..., description="Nombre único del producto")
    descripcion: Optional[str] = None
    precio: Decimal
    stock_minimo: Optional[int] = Field(default=None, ge=0)
    categoria_id: int


# Schema for creating a product; initial stock is recorded as a movement
class ProductCreate(ProductBase):
    stock_inicial: int = Field(default=0, ge=0)


# Schema for updates; current stock is not editable here
class ProductUpdate(ProductBase):
    pass


class ProductResponse(ORMBase):
    id: int
    nombre: str
    descripcion: Optional[str] = None
    precio: Decimal
    stock_actual: int
    stock_minimo: int
    fecha_creacion: Optional[datetime] = None
    fecha_actualizacion: Optional[datetime] = None
    categoria: CategoryInfo
    estado_stock: str
    valor_inventario: Decimal
    categoria_precio: str

    # Only filled on the detail endpoint
    total_movimientos: Optional[int] = None
    total_entradas: Optional[int] = None
    total_salidas: Optional[int] = None
    fecha_ultimo_movimiento: Optional[datetime] = None
    dias_sin_movimiento: Optional[int] = None
    rotacion: Optional[str] = None
    eliminable: Optional[bool] = None

    @classmethod
    def from_model(cls, product: Product, activity=None) -> "ProductResponse":
        data = dict(
            id=product.id,
            nombre=product.name,
            descripcion=product.description,
            precio=product.price,
            stock_actual=product.stock_actual,
            stock_minimo=product.stock_minimo,
            fecha_creacion=product.created_at,
            fecha_actualizacion=product.updated_at,
            categoria=CategoryInfo.from_model(product.category),
            estado_stock=product.stock_status,
            valor_inventario=(product.price or Decimal("0")) * (product.stock_actual or 0),
            categoria_precio=price_band(product.price),
        )
        if activity is not None:
            data.update(
                total_movimientos=activity.total_movements,
                total_entradas=activity.entry_units,
                total_salidas=activity.exit_units,
                fecha_ultimo_movimiento=activity.last_movement_at,
                dias_sin_movimiento=activity.days_idle,
                rotacion=rotation(activity.total_movements, activity.days_idle),
                eliminable=activity.total_movements == 0,
            )
        return cls(**data)


class ProductListPage(ORMBase):
    items: List[ProductResponse]
    total: int


class StockAvailability(ORMBase):
    producto_id: int
    cantidad_requerida: int
    stock_actual: int
    disponible: bool


class ProductExistsResponse(ORMBase):
    nombre: str
    existe: bool
