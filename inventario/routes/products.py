# inventario/routes/products.py
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from services.catalog import ProductService
from services.providers import get_product_service, get_stock_queries
from services.stock_queries import StockQueries
from utils.audit import write_log
from utils.tokenJWT import require_admin, require_manager, require_staff
import schemas.common as common_schemas
import schemas.product as product_schemas
import schemas.reports as report_schemas

router = APIRouter(prefix="/api/productos", tags=["Productos"])


def _serialize(products) -> List[product_schemas.ProductResponse]:
    return [product_schemas.ProductResponse.from_model(p) for p in products]


# =========================
# QUERIES
# =========================
@router.get("", response_model=List[product_schemas.ProductResponse])
def list_products(
    nombre: Optional[str] = Query(None),
    categoria_id: Optional[int] = Query(None, alias="categoriaId"),
    precio_min: Optional[Decimal] = Query(None, alias="precioMin"),
    precio_max: Optional[Decimal] = Query(None, alias="precioMax"),
    con_stock: bool = Query(False, alias="conStock"),
    service: ProductService = Depends(get_product_service),
    _: User = Depends(require_staff),
):
    return _serialize(service.list(
        name=nombre, category_id=categoria_id, min_price=precio_min, max_price=precio_max, in_stock=con_stock,
    ))


@router.get("/buscar", response_model=List[product_schemas.ProductResponse])
def search_products(nombre: str = Query(...), service: ProductService = Depends(get_product_service),
                    _: User = Depends(require_staff)):
    return _serialize(service.list(name=nombre))


@router.get("/nombre/{nombre}", response_model=product_schemas.ProductResponse)
def product_by_name(nombre: str, service: ProductService = Depends(get_product_service),
                    _: User = Depends(require_staff)):
    return product_schemas.ProductResponse.from_model(service.find_by_name(nombre))


@router.get("/categoria/{categoria_id}", response_model=List[product_schemas.ProductResponse])
def products_by_category(
    categoria_id: int,
    con_stock: bool = Query(False, alias="conStock"),
    service: ProductService = Depends(get_product_service),
    _: User = Depends(require_staff),
):
    return _serialize(service.list(category_id=categoria_id, in_stock=con_stock))


@router.get("/stock-bajo", response_model=List[product_schemas.ProductResponse])
def low_stock_products(queries: StockQueries = Depends(get_stock_queries), _: User = Depends(require_staff)):
    return _serialize(queries.low_stock_products())


@router.get("/stock-critico", response_model=List[product_schemas.ProductResponse])
def critical_stock_products(queries: StockQueries = Depends(get_stock_queries), _: User = Depends(require_staff)):
    return _serialize(queries.critical_stock_products())


@router.get("/rango-precio", response_model=List[product_schemas.ProductResponse])
def products_by_price(
    precio_min: Decimal = Query(..., alias="precioMin"),
    precio_max: Decimal = Query(..., alias="precioMax"),
    service: ProductService = Depends(get_product_service),
    _: User = Depends(require_staff),
):
    return _serialize(service.list(min_price=precio_min, max_price=precio_max))


@router.get("/stock-mayor-a/{cantidad}", response_model=List[product_schemas.ProductResponse])
def products_with_stock_over(cantidad: int, service: ProductService = Depends(get_product_service),
                             _: User = Depends(require_staff)):
    return _serialize(service.list(min_stock=cantidad))


@router.get("/estadisticas-stock", response_model=report_schemas.StockStatsResponse)
def stock_stats(queries: StockQueries = Depends(get_stock_queries), _: User = Depends(require_staff)):
    return report_schemas.StockStatsResponse.from_stats(queries.stock_stats())


@router.get("/existe/{nombre}", response_model=product_schemas.ProductExistsResponse)
def product_exists(nombre: str, service: ProductService = Depends(get_product_service),
                   _: User = Depends(require_staff)):
    return product_schemas.ProductExistsResponse(nombre=nombre, existe=service.exists_by_name(nombre))


@router.get("/{producto_id}/disponibilidad", response_model=product_schemas.StockAvailability)
def stock_availability(
    producto_id: int,
    cantidad: int = Query(...),
    service: ProductService = Depends(get_product_service),
    _: User = Depends(require_staff),
):
    available = service.has_stock_available(producto_id, cantidad)
    return product_schemas.StockAvailability(
        producto_id=producto_id,
        cantidad_requerida=cantidad,
        stock_actual=service.get(producto_id).stock_actual,
        disponible=available,
    )


@router.get("/{producto_id}", response_model=product_schemas.ProductResponse)
def get_product(
    producto_id: int,
    service: ProductService = Depends(get_product_service),
    queries: StockQueries = Depends(get_stock_queries),
    _: User = Depends(require_staff),
):
    product = service.get(producto_id)
    return product_schemas.ProductResponse.from_model(product, queries.product_activity(producto_id))


# =========================
# CHANGES
# =========================
@router.post("", response_model=product_schemas.ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    service: ProductService = Depends(get_product_service),
    current_user: User = Depends(require_manager),
):
    product = service.create(
        name=payload.nombre,
        description=payload.descripcion,
        price=payload.precio,
        category_id=payload.categoria_id,
        stock_minimo=payload.stock_minimo or 0,
        initial_stock=payload.stock_inicial,
        created_by=current_user,
    )
    write_log(db, user=current_user, action="PRODUCT_CREATE", resource="productos", request=request,
              meta={"producto_id": product.id, "nombre": product.name, "stock_inicial": payload.stock_inicial})
    return product_schemas.ProductResponse.from_model(product)


@router.put("/{producto_id}", response_model=product_schemas.ProductResponse)
def update_product(
    producto_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    service: ProductService = Depends(get_product_service),
    current_user: User = Depends(require_manager),
):
    product = service.update(
        producto_id,
        name=payload.nombre,
        description=payload.descripcion,
        price=payload.precio,
        category_id=payload.categoria_id,
        stock_minimo=payload.stock_minimo,
    )
    write_log(db, user=current_user, action="PRODUCT_UPDATE", resource="productos", request=request,
              meta={"producto_id": product.id})
    return product_schemas.ProductResponse.from_model(product)


@router.delete("/{producto_id}", response_model=common_schemas.MessageResponse)
def delete_product(
    producto_id: int,
    request: Request,
    db: Session = Depends(get_db),
    service: ProductService = Depends(get_product_service),
    current_user: User = Depends(require_admin),
):
    product = service.delete(producto_id)
    write_log(db, user=current_user, action="PRODUCT_DELETE", resource="productos", request=request,
              meta={"producto_id": producto_id, "nombre": product.name})
    return common_schemas.MessageResponse(message=f"Producto '{product.name}' eliminado correctamente")
