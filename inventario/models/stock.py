# inventario/models/stock.py
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base


class MovementType(str, enum.Enum):
    ENTRADA = "ENTRADA"
    SALIDA = "SALIDA"

    @property
    def description(self) -> str:
        return "Entrada de inventario" if self is MovementType.ENTRADA else "Salida de inventario"


# Append-only ledger entry: one stock change of one product made by one user
class StockMovement(Base):
    __tablename__ = "movimientos"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column("producto_id", Integer, ForeignKey("productos.id"), nullable=False, index=True)
    user_id = Column("usuario_id", Integer, ForeignKey("usuarios.id"), nullable=False, index=True)

    type = Column("tipo_movimiento", Enum(MovementType, name="tipo_movimiento"), nullable=False)

    # Units moved, always positive; the direction comes from type
    quantity = Column("cantidad", Integer, CheckConstraint("cantidad > 0"), nullable=False)

    reason = Column("motivo", String(255), nullable=True)

    # Assigned at insert time in UTC; never updated
    created_at = Column("fecha", DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                        nullable=False, index=True)

    product = relationship("Product")
    user = relationship("User")
