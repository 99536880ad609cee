# inventario/services/movement_engine.py
"""
Movement engine: the only code path that creates stock movements and
changes Product.stock_actual.

Every movement is one transaction: lock and re-read the product row,
validate, update the balance, append the ledger row, commit. Concurrent
writers are serialized by the row lock where the database supports it and,
everywhere, by the product's version column; a stale write is rolled back
and retried from a fresh read.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config import MovementSettings
from models.product import Product
from models.stock import MovementType, StockMovement
from models.users import User
from utils.errors import ErrorCode, ErrorKind, InventoryError, conflict, invalid, not_found
from utils.stock_status import is_critical, stock_status

logger = logging.getLogger(__name__)

INITIAL_STOCK_REASON = "Stock inicial"


@dataclass
class MovementResult:
    movement: StockMovement
    previous_stock: int
    resulting_stock: int
    stock_status: str
    low_stock_alert: bool = False


LowStockListener = Callable[[Product, MovementResult], None]


class MovementEngine:
    def __init__(self, db: Session, settings: MovementSettings,
                 on_low_stock: Optional[LowStockListener] = None):
        self.db = db
        self.settings = settings
        self.on_low_stock = on_low_stock

    # ---- public operations ----

    def create_entry(self, product_id: int, user_id: int, quantity: int, reason: Optional[str] = None) -> MovementResult:
        return self._record(MovementType.ENTRADA, product_id, user_id, quantity, reason)

    def create_exit(self, product_id: int, user_id: int, quantity: int, reason: Optional[str] = None) -> MovementResult:
        return self._record(MovementType.SALIDA, product_id, user_id, quantity, reason)

    def create_movement(self, product_id: int, user_id: int, movement_type: Union[MovementType, str, None],
                        quantity: int, reason: Optional[str] = None) -> MovementResult:
        kind = parse_movement_type(movement_type)
        if kind is MovementType.ENTRADA:
            return self.create_entry(product_id, user_id, quantity, reason)
        return self.create_exit(product_id, user_id, quantity, reason)

    def open_balance(self, product: Product, user: User, quantity: int) -> StockMovement:
        """Record the initial stock of a product created in the caller's transaction.

        The caller commits. The product is new, so nobody else can contend for it.
        """
        if quantity is None or quantity <= 0:
            raise invalid("El stock inicial debe ser mayor a 0")
        if quantity > self.settings.max_stock:
            raise invalid(f"El stock no puede exceder {self.settings.max_stock:,} unidades")
        movement = StockMovement(
            product_id=product.id,
            user_id=user.id,
            type=MovementType.ENTRADA,
            quantity=quantity,
            reason=INITIAL_STOCK_REASON,
        )
        product.stock_actual = (product.stock_actual or 0) + quantity
        self.db.add(movement)
        self.db.flush()
        logger.info(f"Initial stock for product '{product.name}': {quantity}")
        return movement

    # ---- validation ----

    def _validate_id(self, value, label: str) -> None:
        if value is None:
            raise invalid(f"El ID de {label} es obligatorio")
        if value <= 0:
            raise invalid(f"El ID de {label} debe ser mayor a 0")

    def _validate_quantity(self, quantity) -> None:
        if quantity is None:
            raise invalid("La cantidad es obligatoria")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise invalid("La cantidad debe ser un número entero")
        if quantity <= 0:
            raise invalid("La cantidad debe ser mayor a 0")
        if quantity > self.settings.max_quantity:
            raise invalid(f"La cantidad no puede exceder {self.settings.max_quantity:,} unidades por movimiento")

    def _normalize_reason(self, reason: Optional[str], movement_type: MovementType) -> str:
        if reason is None or not reason.strip():
            return movement_type.description
        reason = reason.strip()
        if len(reason) > self.settings.max_reason_length:
            raise invalid(f"El motivo no puede exceder {self.settings.max_reason_length} caracteres")
        return reason[0].upper() + reason[1:]

    # ---- transaction ----

    def _record(self, movement_type: MovementType, product_id: int, user_id: int,
                quantity: int, reason: Optional[str]) -> MovementResult:
        logger.debug(f"{movement_type.value} requested: product={product_id} user={user_id} qty={quantity}")

        # Input checks happen before any read or write
        self._validate_id(product_id, "producto")
        self._validate_id(user_id, "usuario")
        self._validate_quantity(quantity)
        reason = self._normalize_reason(reason, movement_type)

        attempt = 0
        while True:
            attempt += 1
            try:
                result, product = self._apply(movement_type, product_id, user_id, quantity, reason)
                self.db.commit()
                break
            except (StaleDataError, OperationalError) as exc:
                self.db.rollback()
                if attempt >= self.settings.max_retries:
                    logger.error(f"{movement_type.value} on product {product_id} gave up after {attempt} attempts: {exc}")
                    raise conflict(
                        "El producto está siendo modificado por otra operación, intente nuevamente",
                        ErrorCode.CONCURRENT_MODIFICATION,
                    ) from exc
                logger.info(f"Concurrent update on product {product_id}, retrying ({attempt}/{self.settings.max_retries})")
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(result.movement)
        logger.info(
            f"{movement_type.value} #{result.movement.id} product '{product.name}': "
            f"stock {result.previous_stock} -> {result.resulting_stock} (qty {quantity})"
        )
        if result.low_stock_alert:
            logger.warning(
                f"ALERTA: el producto '{product.name}' quedó con stock {result.resulting_stock} "
                f"(mínimo: {product.stock_minimo})"
            )
            if self.on_low_stock is not None:
                self.on_low_stock(product, result)
        return result

    def _apply(self, movement_type: MovementType, product_id: int, user_id: int,
               quantity: int, reason: str):
        self._set_lock_timeout()

        user = self.db.get(User, user_id)
        if user is None:
            raise not_found(f"Usuario no encontrado con ID: {user_id}")
        if not user.active:
            raise invalid(f"El usuario '{user.username}' está inactivo")

        product = lock_product(self.db, product_id)
        if product is None:
            raise not_found(f"Producto no encontrado con ID: {product_id}")

        previous = product.stock_actual
        if movement_type is MovementType.ENTRADA:
            resulting = previous + quantity
            if resulting > self.settings.max_stock:
                raise invalid(
                    f"El stock no puede exceder {self.settings.max_stock:,} unidades "
                    f"(actual: {previous}, entrada: {quantity})"
                )
        else:
            if quantity > previous:
                raise InventoryError(
                    ErrorKind.INSUFFICIENT_STOCK,
                    f"Stock insuficiente para el producto '{product.name}'. "
                    f"Stock disponible: {previous}, cantidad solicitada: {quantity}",
                )
            resulting = previous - quantity

        product.stock_actual = resulting
        movement = StockMovement(
            product_id=product.id,
            user_id=user.id,
            type=movement_type,
            quantity=quantity,
            reason=reason,
        )
        self.db.add(movement)
        # Flushes the versioned UPDATE first; a concurrent writer surfaces here as StaleDataError
        self.db.flush()

        result = MovementResult(
            movement=movement,
            previous_stock=previous,
            resulting_stock=resulting,
            stock_status=stock_status(resulting, product.stock_minimo, self.settings.low_stock_factor),
            low_stock_alert=movement_type is MovementType.SALIDA and is_critical(resulting, product.stock_minimo),
        )
        return result, product

    def _set_lock_timeout(self) -> None:
        seconds = self.settings.lock_timeout_seconds
        dialect = self.db.get_bind().dialect.name
        # SQLite gets the same limit as its busy timeout in database.py
        if dialect == "postgresql":
            self.db.execute(text(f"SET LOCAL lock_timeout = '{int(seconds)}s'"))
            self.db.execute(text(f"SET LOCAL statement_timeout = '{int(seconds) * 2}s'"))
        elif dialect == "mysql":
            self.db.execute(text(f"SET SESSION innodb_lock_wait_timeout = {int(seconds)}"))


def lock_product(db: Session, product_id: int) -> Optional[Product]:
    """Re-read the product row from the database, locked for the rest of the transaction."""
    return (
        db.query(Product)
        .filter(Product.id == product_id)
        .populate_existing()
        .with_for_update(of=Product)
        .first()
    )


def parse_movement_type(value: Union[MovementType, str, None]) -> MovementType:
    if value is None:
        raise invalid("El tipo de movimiento es obligatorio")
    if isinstance(value, MovementType):
        return value
    try:
        return MovementType(str(value).strip().upper())
    except ValueError:
        raise invalid(f"Tipo de movimiento no válido: {value}")
