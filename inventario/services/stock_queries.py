# inventario/services/stock_queries.py
"""Read-only views over the movement ledger and product balances."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from config import MovementSettings
from models.product import Product
from models.stock import MovementType, StockMovement
from models.users import User
from services.movement_engine import parse_movement_type
from utils.errors import invalid, not_found
from utils.stock_status import critical_clause, low_clause, stock_status

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 100


@dataclass
class ProductMovementSummary:
    product_id: int
    product_name: str
    stock_actual: int
    stock_minimo: int
    total_entries: int
    total_exits: int
    computed_stock: int
    stock_status: str

    @property
    def consistent(self) -> bool:
        return self.stock_actual == self.computed_stock


@dataclass
class PeriodStats:
    start: datetime
    end: datetime
    entry_count: int = 0
    exit_count: int = 0
    entry_units: int = 0
    exit_units: int = 0

    @property
    def total_movements(self) -> int:
        return self.entry_count + self.exit_count

    @property
    def net_difference(self) -> int:
        return self.entry_units - self.exit_units

    @property
    def entry_percentage(self) -> float:
        return self.entry_count / self.total_movements * 100 if self.total_movements else 0.0

    @property
    def exit_percentage(self) -> float:
        return self.exit_count / self.total_movements * 100 if self.total_movements else 0.0


@dataclass
class MovedProduct:
    product_id: int
    product_name: str
    total_movements: int
    entry_units: int
    exit_units: int

    @property
    def net_difference(self) -> int:
        return self.entry_units - self.exit_units


@dataclass
class ProductActivity:
    total_movements: int
    entry_units: int
    exit_units: int
    last_movement_at: Optional[datetime] = None

    @property
    def days_idle(self) -> Optional[int]:
        if self.last_movement_at is None:
            return None
        return (utc_now() - to_naive_utc(self.last_movement_at)).days


@dataclass
class StockStats:
    total_products: int
    low_stock: int
    out_of_stock: int
    critical: int = 0

    @property
    def low_stock_percentage(self) -> float:
        return self.low_stock / self.total_products * 100 if self.total_products else 0.0

    @property
    def out_of_stock_percentage(self) -> float:
        return self.out_of_stock / self.total_products * 100 if self.total_products else 0.0


def to_naive_utc(value: datetime) -> datetime:
    # Timestamps are stored as UTC; SQLite keeps them without tzinfo
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utc_now() -> datetime:
    return to_naive_utc(datetime.now(timezone.utc))


class StockQueries:
    def __init__(self, db: Session, settings: MovementSettings):
        self.db = db
        self.settings = settings

    # ---- helpers ----

    def _ledger(self):
        return self.db.query(StockMovement).options(
            joinedload(StockMovement.product).joinedload(Product.category),
            joinedload(StockMovement.user).joinedload(User.role),
        )

    def _require_product(self, product_id: int) -> Product:
        if product_id is None or product_id <= 0:
            raise invalid("El ID del producto debe ser mayor a 0")
        product = self.db.get(Product, product_id)
        if product is None:
            raise not_found(f"Producto no encontrado con ID: {product_id}")
        return product

    def _require_user(self, user_id: int) -> User:
        if user_id is None or user_id <= 0:
            raise invalid("El ID del usuario debe ser mayor a 0")
        user = self.db.get(User, user_id)
        if user is None:
            raise not_found(f"Usuario no encontrado con ID: {user_id}")
        return user

    def validate_range(self, start: Optional[datetime], end: Optional[datetime]) -> Tuple[datetime, datetime]:
        if start is None or end is None:
            raise invalid("Las fechas de inicio y fin son obligatorias")
        start, end = to_naive_utc(start), to_naive_utc(end)
        if end < start:
            raise invalid("La fecha de inicio no puede ser posterior a la fecha de fin")
        if (end - start).days > self.settings.max_period_days:
            raise invalid(f"El rango de fechas no puede exceder {self.settings.max_period_days} días")
        return start, end

    @staticmethod
    def _validate_limit(limit: int) -> None:
        if limit is None or limit <= 0 or limit > MAX_LIST_LIMIT:
            raise invalid(f"El límite debe estar entre 1 y {MAX_LIST_LIMIT}")

    # ---- ledger reads ----

    def get_movement(self, movement_id: int) -> StockMovement:
        if movement_id is None or movement_id <= 0:
            raise invalid("El ID debe ser mayor a 0")
        movement = self._ledger().filter(StockMovement.id == movement_id).first()
        if movement is None:
            raise not_found(f"Movimiento no encontrado con ID: {movement_id}")
        return movement

    def all_movements(self) -> List[StockMovement]:
        return self._ledger().order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).all()

    def history(self, page: int, page_size: int) -> Tuple[List[StockMovement], int]:
        if page < 1:
            raise invalid("El número de página debe ser mayor a 0")
        if page_size <= 0 or page_size > MAX_LIST_LIMIT:
            raise invalid(f"El tamaño de página debe estar entre 1 y {MAX_LIST_LIMIT}")
        total = self.db.query(func.count(StockMovement.id)).scalar() or 0
        items = (
            self._ledger()
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def by_product(self, product_id: int) -> List[StockMovement]:
        self._require_product(product_id)
        return self._ledger().filter(StockMovement.product_id == product_id).order_by(StockMovement.id).all()

    def by_user(self, user_id: int) -> List[StockMovement]:
        self._require_user(user_id)
        return self._ledger().filter(StockMovement.user_id == user_id).order_by(StockMovement.id).all()

    def by_type(self, movement_type) -> List[StockMovement]:
        kind = parse_movement_type(movement_type)
        return self._ledger().filter(StockMovement.type == kind).order_by(StockMovement.id).all()

    def by_date_range(self, start: datetime, end: datetime) -> List[StockMovement]:
        start, end = self.validate_range(start, end)
        return (
            self._ledger()
            .filter(StockMovement.created_at.between(start, end))
            .order_by(StockMovement.created_at, StockMovement.id)
            .all()
        )

    def recent(self, days: int) -> List[StockMovement]:
        if days is None or days <= 0:
            raise invalid("El número de días debe ser mayor a 0")
        since = utc_now() - timedelta(days=days)
        return (
            self._ledger()
            .filter(StockMovement.created_at >= since)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .all()
        )

    def by_category(self, category_id: int) -> List[StockMovement]:
        if category_id is None or category_id <= 0:
            raise invalid("El ID de la categoría debe ser mayor a 0")
        return (
            self._ledger()
            .join(Product, StockMovement.product_id == Product.id)
            .filter(Product.category_id == category_id)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .all()
        )

    def search_reason(self, text: str) -> List[StockMovement]:
        if text is None or not text.strip():
            raise invalid("El motivo de búsqueda no puede estar vacío")
        return (
            self._ledger()
            .filter(StockMovement.reason.ilike(f"%{text.strip()}%"))
            .order_by(StockMovement.id)
            .all()
        )

    def count_by_type(self, movement_type) -> int:
        kind = parse_movement_type(movement_type)
        return self.db.query(func.count(StockMovement.id)).filter(StockMovement.type == kind).scalar() or 0

    def latest_by_user(self, user_id: int, limit: int) -> List[StockMovement]:
        self._require_user(user_id)
        self._validate_limit(limit)
        return (
            self._ledger()
            .filter(StockMovement.user_id == user_id)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .limit(limit)
            .all()
        )

    # ---- aggregates ----

    def _sum_by_type(self, product_id: int, kind: MovementType) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(StockMovement.quantity), 0))
            .filter(StockMovement.product_id == product_id, StockMovement.type == kind)
            .scalar()
        )
        return int(total or 0)

    def sum_entries(self, product_id: int) -> int:
        return self._sum_by_type(product_id, MovementType.ENTRADA)

    def sum_exits(self, product_id: int) -> int:
        return self._sum_by_type(product_id, MovementType.SALIDA)

    def product_summary(self, product_id: int) -> ProductMovementSummary:
        product = self._require_product(product_id)
        entries = self.sum_entries(product_id)
        exits = self.sum_exits(product_id)
        summary = ProductMovementSummary(
            product_id=product.id,
            product_name=product.name,
            stock_actual=product.stock_actual,
            stock_minimo=product.stock_minimo,
            total_entries=entries,
            total_exits=exits,
            computed_stock=entries - exits,
            stock_status=stock_status(product.stock_actual, product.stock_minimo, self.settings.low_stock_factor),
        )
        if not summary.consistent:
            logger.warning(
                f"Stock mismatch on product {product.id}: stored {summary.stock_actual}, "
                f"ledger {summary.computed_stock}"
            )
        return summary

    def product_activity(self, product_id: int) -> ProductActivity:
        self._require_product(product_id)
        count, last = (
            self.db.query(func.count(StockMovement.id), func.max(StockMovement.created_at))
            .filter(StockMovement.product_id == product_id)
            .one()
        )
        return ProductActivity(
            total_movements=int(count or 0),
            entry_units=self.sum_entries(product_id),
            exit_units=self.sum_exits(product_id),
            last_movement_at=last,
        )

    def stats_for_period(self, start: datetime, end: datetime) -> PeriodStats:
        start, end = self.validate_range(start, end)
        rows = (
            self.db.query(
                StockMovement.type,
                func.count(StockMovement.id),
                func.coalesce(func.sum(StockMovement.quantity), 0),
            )
            .filter(StockMovement.created_at.between(start, end))
            .group_by(StockMovement.type)
            .all()
        )
        stats = PeriodStats(start=start, end=end)
        for kind, count, units in rows:
            if kind is MovementType.ENTRADA:
                stats.entry_count, stats.entry_units = int(count), int(units)
            elif kind is MovementType.SALIDA:
                stats.exit_count, stats.exit_units = int(count), int(units)
        return stats

    def top_moved_products(self, start: datetime, end: datetime, limit: int = 10) -> List[MovedProduct]:
        """Products ranked by number of movements in the period. Ties keep database order."""
        start, end = self.validate_range(start, end)
        self._validate_limit(limit)
        movement_count = func.count(StockMovement.id)
        rows = (
            self.db.query(
                Product.id,
                Product.name,
                movement_count,
                func.coalesce(func.sum(case((StockMovement.type == MovementType.ENTRADA, StockMovement.quantity), else_=0)), 0),
                func.coalesce(func.sum(case((StockMovement.type == MovementType.SALIDA, StockMovement.quantity), else_=0)), 0),
            )
            .join(StockMovement, StockMovement.product_id == Product.id)
            .filter(StockMovement.created_at.between(start, end))
            .group_by(Product.id, Product.name)
            .order_by(movement_count.desc())
            .limit(limit)
            .all()
        )
        return [
            MovedProduct(
                product_id=pid, product_name=name, total_movements=int(count),
                entry_units=int(entries), exit_units=int(exits),
            )
            for pid, name, count, entries, exits in rows
        ]

    # ---- stock status ----

    def low_stock_products(self) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(low_clause(Product, self.settings.low_stock_factor))
            .order_by(Product.stock_actual, Product.id)
            .all()
        )

    def critical_stock_products(self) -> List[Product]:
        return self.db.query(Product).filter(critical_clause(Product)).order_by(Product.stock_actual, Product.id).all()

    def stock_stats(self) -> StockStats:
        total, low, out, critical = self.db.query(
            func.count(Product.id),
            func.count(case((low_clause(Product, self.settings.low_stock_factor), 1))),
            func.count(case((Product.stock_actual == 0, 1))),
            func.count(case((critical_clause(Product), 1))),
        ).one()
        return StockStats(
            total_products=int(total or 0),
            low_stock=int(low or 0),
            out_of_stock=int(out or 0),
            critical=int(critical or 0),
        )
