# inventario/schemas/reports.py
from datetime import datetime
from typing import List

from schemas.common import ORMBase


class ProductSummaryResponse(ORMBase):
    producto_id: int
    nombre_producto: str
    stock_actual: int
    stock_minimo: int
    total_entradas: int
    total_salidas: int
    stock_calculado: int
    estado_stock: str
    consistente: bool

    @classmethod
    def from_summary(cls, s) -> "ProductSummaryResponse":
        return cls(
            producto_id=s.product_id,
            nombre_producto=s.product_name,
            stock_actual=s.stock_actual,
            stock_minimo=s.stock_minimo,
            total_entradas=s.total_entries,
            total_salidas=s.total_exits,
            stock_calculado=s.computed_stock,
            estado_stock=s.stock_status,
            consistente=s.consistent,
        )


class PeriodStatsResponse(ORMBase):
    fecha_inicio: datetime
    fecha_fin: datetime
    total_movimientos: int
    cantidad_entradas: int
    cantidad_salidas: int
    unidades_entrada: int
    unidades_salida: int
    diferencia_neta: int
    porcentaje_entradas: float
    porcentaje_salidas: float

    @classmethod
    def from_stats(cls, s) -> "PeriodStatsResponse":
        return cls(
            fecha_inicio=s.start,
            fecha_fin=s.end,
            total_movimientos=s.total_movements,
            cantidad_entradas=s.entry_count,
            cantidad_salidas=s.exit_count,
            unidades_entrada=s.entry_units,
            unidades_salida=s.exit_units,
            diferencia_neta=s.net_difference,
            porcentaje_entradas=round(s.entry_percentage, 2),
            porcentaje_salidas=round(s.exit_percentage, 2),
        )


class MovedProductResponse(ORMBase):
    producto_id: int
    nombre_producto: str
    total_movimientos: int
    unidades_entrada: int
    unidades_salida: int
    diferencia_neta: int

    @classmethod
    def from_row(cls, m) -> "MovedProductResponse":
        return cls(
            producto_id=m.product_id,
            nombre_producto=m.product_name,
            total_movimientos=m.total_movements,
            unidades_entrada=m.entry_units,
            unidades_salida=m.exit_units,
            diferencia_neta=m.net_difference,
        )


class StockStatsResponse(ORMBase):
    total_productos: int
    productos_stock_bajo: int
    productos_stock_critico: int
    productos_sin_stock: int
    porcentaje_stock_bajo: float
    porcentaje_sin_stock: float

    @classmethod
    def from_stats(cls, s) -> "StockStatsResponse":
        return cls(
            total_productos=s.total_products,
            productos_stock_bajo=s.low_stock,
            productos_stock_critico=s.critical,
            productos_sin_stock=s.out_of_stock,
            porcentaje_stock_bajo=round(s.low_stock_percentage, 2),
            porcentaje_sin_stock=round(s.out_of_stock_percentage, 2),
        )


class TopMovedResponse(ORMBase):
    fecha_inicio: datetime
    fecha_fin: datetime
    productos: List[MovedProductResponse]
