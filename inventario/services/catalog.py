# inventario/services/catalog.py
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import exists, func
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from models.category import Category
from models.product import Product
from models.stock import StockMovement
from models.users import User
from services.movement_engine import MovementEngine, lock_product
from utils.errors import ErrorCode, conflict, invalid, not_found

logger = logging.getLogger(__name__)

MAX_PRICE = Decimal("99999999.99")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.name).all()

    def get(self, category_id: int) -> Category:
        if category_id is None or category_id <= 0:
            raise invalid("El ID debe ser mayor a 0")
        category = self.db.get(Category, category_id)
        if category is None:
            raise not_found(f"Categoría no encontrada con ID: {category_id}")
        return category

    def find_by_name(self, name: str) -> Category:
        name = self._validate_name(name)
        category = self.db.query(Category).filter(func.lower(Category.name) == name.lower()).first()
        if category is None:
            raise not_found(f"Categoría no encontrada: {name}")
        return category

    def search(self, text: str) -> List[Category]:
        text = self._validate_name(text, check_length=False)
        return self.db.query(Category).filter(Category.name.ilike(f"%{text}%")).order_by(Category.name).all()

    def with_products(self) -> List[Category]:
        has_products = exists().where(Product.category_id == Category.id)
        return self.db.query(Category).filter(has_products).order_by(Category.name).all()

    def without_products(self) -> List[Category]:
        has_products = exists().where(Product.category_id == Category.id)
        return self.db.query(Category).filter(~has_products).order_by(Category.name).all()

    def exists(self, name: str) -> bool:
        name = self._validate_name(name, check_length=False)
        return self.db.query(exists().where(func.lower(Category.name) == name.lower())).scalar()

    def count_products(self, category_id: int) -> int:
        self.get(category_id)
        return self.db.query(func.count(Product.id)).filter(Product.category_id == category_id).scalar() or 0

    def create(self, name: str, description: Optional[str] = None) -> Category:
        name = self._validate_name(name)
        description = self._validate_description(description)
        if self.exists(name):
            raise conflict(f"Ya existe una categoría con el nombre: {name}")
        category = Category(name=name, description=description)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info(f"Category created: {category.id} - {category.name}")
        return category

    def update(self, category_id: int, name: str, description: Optional[str] = None) -> Category:
        category = self.get(category_id)
        name = self._validate_name(name)
        description = self._validate_description(description)
        if name.lower() != category.name.lower() and self.exists(name):
            raise conflict(f"Ya existe una categoría con el nombre: {name}")
        category.name = name
        category.description = description
        self.db.commit()
        self.db.refresh(category)
        logger.info(f"Category updated: {category.id} - {category.name}")
        return category

    def delete(self, category_id: int) -> Category:
        category = self.get(category_id)
        count = self.count_products(category_id)
        if count:
            raise conflict(
                f"No se puede eliminar la categoría '{category.name}' porque tiene {count} productos asociados",
                ErrorCode.CATEGORY_HAS_PRODUCTS,
            )
        self.db.delete(category)
        self.db.commit()
        logger.info(f"Category deleted: {category.name}")
        return category

    @staticmethod
    def _validate_name(name: Optional[str], check_length: bool = True) -> str:
        name = _clean(name)
        if name is None:
            raise invalid("El nombre de la categoría no puede estar vacío")
        if check_length:
            if len(name) > 100:
                raise invalid("El nombre de la categoría no puede exceder 100 caracteres")
            if len(name) < 2:
                raise invalid("El nombre de la categoría debe tener al menos 2 caracteres")
        return name

    @staticmethod
    def _validate_description(description: Optional[str]) -> Optional[str]:
        description = _clean(description)
        if description is not None and len(description) > 255:
            raise invalid("La descripción no puede exceder 255 caracteres")
        return description


class ProductService:
    """Catalogue operations on products. Stock is read here but only the movement engine writes it."""

    def __init__(self, db: Session, engine: MovementEngine):
        self.db = db
        self.engine = engine
        self.categories = CategoryService(db)

    # ---- balance store contract ----

    def get(self, product_id: int) -> Product:
        if product_id is None or product_id <= 0:
            raise invalid("El ID debe ser mayor a 0")
        product = self.db.get(Product, product_id)
        if product is None:
            raise not_found(f"Producto no encontrado con ID: {product_id}")
        return product

    def get_for_update(self, product_id: int) -> Product:
        product = lock_product(self.db, product_id)
        if product is None:
            raise not_found(f"Producto no encontrado con ID: {product_id}")
        return product

    def save(self, product: Product) -> Product:
        self.db.add(product)
        self.db.flush()
        return product

    def exists_by_name(self, name: str) -> bool:
        name = _clean(name)
        if name is None:
            raise invalid("El nombre del producto no puede estar vacío")
        return self.db.query(exists().where(func.lower(Product.name) == name.lower())).scalar()

    def has_movements(self, product_id: int) -> bool:
        return self.db.query(exists().where(StockMovement.product_id == product_id)).scalar()

    # ---- queries ----

    def list(self, name: Optional[str] = None, category_id: Optional[int] = None,
             min_price: Optional[Decimal] = None, max_price: Optional[Decimal] = None,
             min_stock: Optional[int] = None, in_stock: bool = False) -> List[Product]:
        query = self.db.query(Product)
        if name:
            query = query.filter(Product.name.ilike(f"%{name.strip()}%"))
        if category_id is not None:
            self.categories.get(category_id)
            query = query.filter(Product.category_id == category_id)
        if min_price is not None or max_price is not None:
            self._validate_price_range(min_price, max_price)
            if min_price is not None:
                query = query.filter(Product.price >= min_price)
            if max_price is not None:
                query = query.filter(Product.price <= max_price)
        if min_stock is not None:
            if min_stock < 0:
                raise invalid("La cantidad debe ser mayor o igual a 0")
            query = query.filter(Product.stock_actual > min_stock)
        if in_stock:
            query = query.filter(Product.stock_actual > 0)
        return query.order_by(Product.id).all()

    def find_by_name(self, name: str) -> Product:
        name = _clean(name)
        if name is None:
            raise invalid("El nombre del producto no puede estar vacío")
        product = self.db.query(Product).filter(func.lower(Product.name) == name.lower()).first()
        if product is None:
            raise not_found(f"Producto no encontrado: {name}")
        return product

    def has_stock_available(self, product_id: int, quantity: int) -> bool:
        if quantity is None or quantity <= 0:
            raise invalid("La cantidad requerida debe ser mayor a 0")
        return self.get(product_id).stock_actual >= quantity

    def count_by_category(self, category_id: int) -> int:
        return self.categories.count_products(category_id)

    # ---- writes ----

    def create(self, *, name: str, price: Decimal, category_id: int, created_by: User,
               description: Optional[str] = None, stock_minimo: int = 0,
               initial_stock: int = 0) -> Product:
        name = self._validate_name(name)
        description = self._validate_description(description)
        self._validate_price(price)
        self._validate_stock(stock_minimo, "stock mínimo")
        self._validate_stock(initial_stock, "stock inicial")
        category = self.categories.get(category_id)
        if self.exists_by_name(name):
            raise conflict(f"Ya existe un producto con el nombre: {name}")

        product = Product(
            name=name,
            description=description,
            price=price,
            stock_actual=0,
            stock_minimo=stock_minimo or 0,
            category_id=category.id,
        )
        try:
            self.save(product)
            # Initial stock goes through the ledger so balance and movements agree from day one
            if initial_stock:
                self.engine.open_balance(product, created_by, initial_stock)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(product)
        logger.info(f"Product created: {product.id} - {product.name} (stock {product.stock_actual})")
        return product

    def update(self, product_id: int, *, name: str, price: Decimal, category_id: int,
               description: Optional[str] = None, stock_minimo: Optional[int] = None) -> Product:
        product = self.get(product_id)
        name = self._validate_name(name)
        description = self._validate_description(description)
        self._validate_price(price)
        if name.lower() != product.name.lower() and self.exists_by_name(name):
            raise conflict(f"Ya existe un producto con el nombre: {name}")
        if category_id != product.category_id:
            product.category_id = self.categories.get(category_id).id

        product.name = name
        product.description = description
        product.price = price
        # stock_actual is deliberately absent: it changes through movements only
        if stock_minimo is not None:
            self._validate_stock(stock_minimo, "stock mínimo")
            product.stock_minimo = stock_minimo
        self._commit_versioned(product_id)
        self.db.refresh(product)
        logger.info(f"Product updated: {product.id} - {product.name}")
        return product

    def delete(self, product_id: int) -> Product:
        product = self.get(product_id)
        if self.has_movements(product_id):
            raise conflict(
                f"No se puede eliminar el producto '{product.name}' porque tiene movimientos de inventario asociados"
            )
        self.db.delete(product)
        self._commit_versioned(product_id)
        logger.info(f"Product deleted: {product.name}")
        return product

    def _commit_versioned(self, product_id: int) -> None:
        # A movement committed since the product was read bumps its version
        try:
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            logger.warning(f"Product {product_id} changed concurrently: {exc}")
            raise conflict(
                "El producto fue modificado por otra operación, intente nuevamente",
                ErrorCode.CONCURRENT_MODIFICATION,
            ) from exc

    # ---- validation ----

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        name = _clean(name)
        if name is None:
            raise invalid("El nombre del producto no puede estar vacío")
        if len(name) > 150:
            raise invalid("El nombre del producto no puede exceder 150 caracteres")
        if len(name) < 2:
            raise invalid("El nombre del producto debe tener al menos 2 caracteres")
        return name

    @staticmethod
    def _validate_description(description: Optional[str]) -> Optional[str]:
        description = _clean(description)
        if description is not None and len(description) > 1000:
            raise invalid("La descripción no puede exceder 1000 caracteres")
        return description

    @staticmethod
    def _validate_price(price) -> None:
        if price is None:
            raise invalid("El precio es obligatorio")
        price = Decimal(str(price))
        if price < 0:
            raise invalid("El precio no puede ser negativo")
        if price > MAX_PRICE:
            raise invalid("El precio no puede exceder 99,999,999.99")
        if price.as_tuple().exponent < -2:
            raise invalid("El precio no puede tener más de 2 decimales")

    def _validate_stock(self, value: Optional[int], label: str) -> None:
        if value is None:
            return
        if value < 0:
            raise invalid(f"El {label} no puede ser negativo")
        if value > self.engine.settings.max_stock:
            raise invalid(f"El {label} no puede exceder {self.engine.settings.max_stock:,} unidades")

    @staticmethod
    def _validate_price_range(min_price, max_price) -> None:
        if (min_price is not None and min_price < 0) or (max_price is not None and max_price < 0):
            raise invalid("Los precios no pueden ser negativos")
        if min_price is not None and max_price is not None and min_price > max_price:
            raise invalid("El precio mínimo no puede ser mayor al precio máximo")
