# inventario/routes/movements.py
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.stock import MovementType
from models.users import User
from services.movement_engine import MovementEngine, MovementResult
from services.providers import get_movement_engine, get_stock_queries
from services.stock_queries import StockQueries
from utils.audit import write_log
from utils.tokenJWT import require_manager, require_staff
import schemas.reports as report_schemas
import schemas.stock as stock_schemas

router = APIRouter(prefix="/api/movimientos", tags=["Movimientos"])


def _serialize(movements) -> List[stock_schemas.MovementResponse]:
    return [stock_schemas.MovementResponse.from_model(m) for m in movements]


def _register(
    movement_type,
    payload: stock_schemas.MovementRequest,
    request: Request,
    db: Session,
    engine: MovementEngine,
    current_user: User,
) -> stock_schemas.MovementResponse:
    user_id = current_user.id if payload.usuario_id is None else payload.usuario_id
    result: MovementResult = engine.create_movement(
        payload.producto_id, user_id, movement_type, payload.cantidad, payload.motivo
    )
    movement = result.movement
    write_log(
        db, user=current_user, action=f"MOVEMENT_{movement.type.value}", resource="movimientos",
        request=request,
        meta={
            "movimiento_id": movement.id,
            "producto_id": movement.product_id,
            "cantidad": movement.quantity,
            "stock_anterior": result.previous_stock,
            "stock_resultante": result.resulting_stock,
        },
    )
    return stock_schemas.MovementResponse.from_model(movement, result)


# =========================
# REGISTRATION
# =========================
@router.post("/entrada", response_model=stock_schemas.MovementResponse, status_code=status.HTTP_201_CREATED)
def create_entry(
    payload: stock_schemas.MovementRequest,
    request: Request,
    db: Session = Depends(get_db),
    engine: MovementEngine = Depends(get_movement_engine),
    current_user: User = Depends(require_manager),
):
    return _register(MovementType.ENTRADA, payload, request, db, engine, current_user)


@router.post("/salida", response_model=stock_schemas.MovementResponse, status_code=status.HTTP_201_CREATED)
def create_exit(
    payload: stock_schemas.MovementRequest,
    request: Request,
    db: Session = Depends(get_db),
    engine: MovementEngine = Depends(get_movement_engine),
    current_user: User = Depends(require_manager),
):
    return _register(MovementType.SALIDA, payload, request, db, engine, current_user)


@router.post("", response_model=stock_schemas.MovementResponse, status_code=status.HTTP_201_CREATED)
def create_movement(
    payload: stock_schemas.MovementRequest,
    request: Request,
    db: Session = Depends(get_db),
    engine: MovementEngine = Depends(get_movement_engine),
    current_user: User = Depends(require_manager),
):
    """Register a movement whose direction comes from tipoMovimiento."""
    return _register(payload.tipo_movimiento, payload, request, db, engine, current_user)


# =========================
# LEDGER READS
# =========================
@router.get("", response_model=List[stock_schemas.MovementResponse])
def list_movements(queries: StockQueries = Depends(get_stock_queries), _: User = Depends(require_staff)):
    return _serialize(queries.all_movements())


@router.get("/historial", response_model=stock_schemas.MovementPage)
def movement_history(
    page: int = Query(1),
    page_size: int = Query(20),
    queries: StockQueries = Depends(get_stock_queries),
    _: User = Depends(require_staff),
):
    items, total = queries.history(page, page_size)
    return {"items": _serialize(items), "total": total, "page": page, "page_size": page_size}


@router.get("/por-producto/{producto_id}", response_model=List[stock_schemas.MovementResponse])
def movements_by_product(producto_id: int, queries: StockQueries = Depends(get_stock_queries),
                         _: User = Depends(require_staff)):
    return _serialize(queries.by_product(producto_id))


@router.get("/por-usuario/{usuario_id}", response_model=List[stock_schemas.MovementResponse])
def movements_by_user(usuario_id: int, queries: StockQueries = Depends(get_stock_queries),
                      _: User = Depends(require_staff)):
    return _serialize(queries.by_user(usuario_id))


@router.get("/por-tipo/{tipo}", response_model=List[stock_schemas.MovementResponse])
def movements_by_type(tipo: str, queries: StockQueries = Depends(get_stock_queries),
                      _: User = Depends(require_staff)):
    return _serialize(queries.by_type(tipo))


@router.get("/por-fecha", response_model=List[stock_schemas.MovementResponse])
def movements_by_date(
    inicio: datetime = Query(...),
    fin: datetime = Query(...),
    queries: StockQueries = Depends(get_stock_queries),
    _: User = Depends(require_staff),
):
    return _serialize(queries.by_date_range(inicio, fin))


@router.get("/recientes", response_model=List[stock_schemas.MovementResponse])
def recent_movements(dias: int = Query(7), queries: StockQueries = Depends(get_stock_queries),
                     _: User = Depends(require_staff)):
    return _serialize(queries.recent(dias))


@router.get("/por-categoria/{categoria_id}", response_model=List[stock_schemas.MovementResponse])
def movements_by_category(categoria_id: int, queries: StockQueries = Depends(get_stock_queries),
                          _: User = Depends(require_staff)):
    return _serialize(queries.by_category(categoria_id))


@router.get("/buscar-motivo", response_model=List[stock_schemas.MovementResponse])
def search_by_reason(motivo: str = Query(...), queries: StockQueries = Depends(get_stock_queries),
                     _: User = Depends(require_staff)):
    return _serialize(queries.search_reason(motivo))


@router.get("/contar-por-tipo/{tipo}", response_model=stock_schemas.MovementCount)
def count_by_type(tipo: str, queries: StockQueries = Depends(get_stock_queries),
                  _: User = Depends(require_staff)):
    total = queries.count_by_type(tipo)
    return stock_schemas.MovementCount(tipo_movimiento=tipo.strip().upper(), total=total)


@router.get("/ultimos-por-usuario/{usuario_id}", response_model=List[stock_schemas.MovementResponse])
def latest_by_user(usuario_id: int, limite: int = Query(10), queries: StockQueries = Depends(get_stock_queries),
                   _: User = Depends(require_staff)):
    return _serialize(queries.latest_by_user(usuario_id, limite))


# =========================
# AGGREGATES
# =========================
@router.get("/resumen-producto/{producto_id}", response_model=report_schemas.ProductSummaryResponse)
def product_summary(producto_id: int, queries: StockQueries = Depends(get_stock_queries),
                    _: User = Depends(require_staff)):
    return report_schemas.ProductSummaryResponse.from_summary(queries.product_summary(producto_id))


@router.get("/estadisticas", response_model=report_schemas.PeriodStatsResponse)
def period_stats(
    inicio: datetime = Query(...),
    fin: datetime = Query(...),
    queries: StockQueries = Depends(get_stock_queries),
    _: User = Depends(require_staff),
):
    return report_schemas.PeriodStatsResponse.from_stats(queries.stats_for_period(inicio, fin))


@router.get("/productos-mas-movidos", response_model=report_schemas.TopMovedResponse)
def top_moved_products(
    inicio: datetime = Query(...),
    fin: datetime = Query(...),
    limite: int = Query(10),
    queries: StockQueries = Depends(get_stock_queries),
    _: User = Depends(require_staff),
):
    rows = queries.top_moved_products(inicio, fin, limite)
    return report_schemas.TopMovedResponse(
        fecha_inicio=inicio,
        fecha_fin=fin,
        productos=[report_schemas.MovedProductResponse.from_row(r) for r in rows],
    )


@router.get("/{movimiento_id}", response_model=stock_schemas.MovementResponse)
def get_movement(movimiento_id: int, queries: StockQueries = Depends(get_stock_queries),
                 _: User = Depends(require_staff)):
    return stock_schemas.MovementResponse.from_model(queries.get_movement(movimiento_id))
