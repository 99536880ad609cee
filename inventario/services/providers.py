# inventario/services/providers.py
"""FastAPI dependencies that build the services for one request."""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from config import get_movement_settings
from database import get_db
from models.product import Product
from services.accounts import RoleService, UserService
from services.catalog import CategoryService, ProductService
from services.movement_engine import MovementEngine, MovementResult
from services.stock_queries import StockQueries
from utils.audit import write_log


def get_movement_engine(request: Request, db: Session = Depends(get_db)) -> MovementEngine:
    def _audit_low_stock(product: Product, result: MovementResult) -> None:
        write_log(
            db,
            user=result.movement.user,
            action="LOW_STOCK_ALERT",
            resource="productos",
            status="WARNING",
            request=request,
            meta={
                "producto_id": product.id,
                "producto": product.name,
                "stock_actual": result.resulting_stock,
                "stock_minimo": product.stock_minimo,
                "movimiento_id": result.movement.id,
            },
        )

    return MovementEngine(db, get_movement_settings(), on_low_stock=_audit_low_stock)


def get_stock_queries(db: Session = Depends(get_db)) -> StockQueries:
    return StockQueries(db, get_movement_settings())


def get_product_service(
    db: Session = Depends(get_db),
    engine: MovementEngine = Depends(get_movement_engine),
) -> ProductService:
    return ProductService(db, engine)


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


def get_role_service(db: Session = Depends(get_db)) -> RoleService:
    return RoleService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)
