# inventario/schemas/stock.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from models.stock import MovementType, StockMovement
from schemas.common import ORMBase
from schemas.user import initials

LARGE_MOVEMENT_THRESHOLD = 100

# Keyword groups used to classify a movement reason, checked in order
REASON_CATEGORIES = (
    ("Comercial", ("venta", "cliente", "entrega")),
    ("Operacional", ("compra", "proveedor", "recepción")),
    ("Ajuste", ("ajuste", "corrección", "inventario")),
    ("Merma", ("merma", "vencimiento", "dañado", "pérdida")),
    ("Devolución", ("devolución", "retorno")),
    ("Transferencia", ("transferencia", "traslado", "sucursal")),
)


def impact_level(quantity: Optional[int]) -> str:
    if quantity is None:
        return "Sin información"
    if quantity <= 5:
        return "Bajo"
    if quantity <= 50:
        return "Medio"
    if quantity <= 500:
        return "Alto"
    return "Muy Alto"


def _plural(n: int, word: str) -> str:
    return f"Hace {n} {word}{'' if n == 1 else 's'}"


def elapsed_text(when: Optional[datetime], now: Optional[datetime] = None) -> str:
    if when is None:
        return "Fecha desconocida"
    # Naive timestamps come from SQLite and are UTC
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = max(int((now - when).total_seconds()), 0)
    if seconds < 60:
        return _plural(seconds, "segundo")
    if seconds < 3600:
        return _plural(seconds // 60, "minuto")
    if seconds < 86400:
        return _plural(seconds // 3600, "hora")
    days = seconds // 86400
    if days < 30:
        return _plural(days, "día")
    return "Hace más de un mes"


def reason_category(reason: Optional[str], movement_type: MovementType) -> str:
    if reason is None:
        return "Sin categoría"
    lowered = reason.lower()
    for category, keywords in REASON_CATEGORIES:
        if any(word in lowered for word in keywords):
            return category
    return "Entrada" if movement_type is MovementType.ENTRADA else "Salida"


# Request body for registering a movement
class MovementRequest(ORMBase):
    producto_id: Optional[int] = None
    # Defaults to the authenticated user
    usuario_id: Optional[int] = None
    tipo_movimiento: Optional[str] = None
    cantidad: Optional[int] = None
    motivo: Optional[str] = Field(default=None, description="Motivo del movimiento")


class MovementProductInfo(ORMBase):
    id: int
    nombre: str
    precio: Decimal
    nombre_categoria: Optional[str] = None


class MovementUserInfo(ORMBase):
    id: int
    username: str
    nombre_completo: str
    nombre_rol: str
    iniciales: str


class MovementResponse(ORMBase):
    id: int
    tipo_movimiento: MovementType
    descripcion_tipo: str
    cantidad: int
    motivo: Optional[str] = None
    fecha: datetime
    producto: MovementProductInfo
    usuario: MovementUserInfo
    valor_movimiento: Decimal
    nivel_impacto: str
    tiempo_transcurrido: str
    es_movimiento_masivo: bool
    categoria_motivo: str

    # Only present on the response of a new movement
    stock_anterior: Optional[int] = None
    stock_resultante: Optional[int] = None
    estado_stock_resultante: Optional[str] = None
    alerta_stock_bajo: Optional[bool] = None

    @classmethod
    def from_model(cls, movement: StockMovement, result=None) -> "MovementResponse":
        product, user = movement.product, movement.user
        data = dict(
            id=movement.id,
            tipo_movimiento=movement.type,
            descripcion_tipo=movement.type.description,
            cantidad=movement.quantity,
            motivo=movement.reason,
            fecha=movement.created_at,
            producto=MovementProductInfo(
                id=product.id,
                nombre=product.name,
                precio=product.price,
                nombre_categoria=product.category.name if product.category else None,
            ),
            usuario=MovementUserInfo(
                id=user.id,
                username=user.username,
                nombre_completo=user.full_name,
                nombre_rol=user.role_name,
                iniciales=initials(user.full_name, user.username),
            ),
            valor_movimiento=(product.price or Decimal("0")) * movement.quantity,
            nivel_impacto=impact_level(movement.quantity),
            tiempo_transcurrido=elapsed_text(movement.created_at),
            es_movimiento_masivo=movement.quantity > LARGE_MOVEMENT_THRESHOLD,
            categoria_motivo=reason_category(movement.reason, movement.type),
        )
        if result is not None:
            data.update(
                stock_anterior=result.previous_stock,
                stock_resultante=result.resulting_stock,
                estado_stock_resultante=result.stock_status,
                alerta_stock_bajo=result.low_stock_alert,
            )
        return cls(**data)


class MovementPage(ORMBase):
    items: List[MovementResponse]
    total: int
    page: int
    page_size: int


class MovementCount(ORMBase):
    tipo_movimiento: MovementType
    total: int
