# inventario/models/product.py
from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, DateTime, CheckConstraint, Index, func
from sqlalchemy.orm import relationship
from database import Base

from config import settings
from utils.stock_status import stock_status


# Model Product
# A catalogue item with its denormalized stock balance. stock_actual is only
# ever written by the movement engine; version guards it against lost updates.
class Product(Base):
    __tablename__ = "productos"

    id = Column(Integer, primary_key=True, index=True)
    name = Column("nombre", String(150), unique=True, nullable=False, index=True)
    description = Column("descripcion", Text, nullable=True)

    price = Column("precio", Numeric(10, 2), CheckConstraint("precio >= 0"), nullable=False)

    # Stock data
    stock_actual = Column(Integer, CheckConstraint("stock_actual >= 0"), nullable=False, default=0)
    stock_minimo = Column(Integer, CheckConstraint("stock_minimo >= 0"), nullable=False, default=0)

    category_id = Column("categoria_id", Integer, ForeignKey("categorias.id"), nullable=False, index=True)
    category = relationship("Category", lazy="joined", innerjoin=True)

    created_at = Column("fecha_creacion", DateTime(timezone=True), server_default=func.now())
    updated_at = Column("fecha_actualizacion", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_productos_stock_bajo", "stock_actual", "stock_minimo"),
    )

    @property
    def stock_status(self) -> str:
        return stock_status(self.stock_actual or 0, self.stock_minimo or 0, settings.LOW_STOCK_FACTOR)
