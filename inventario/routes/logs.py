# inventario/routes/logs.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.log import AuditLog
from models.users import User
from utils.errors import invalid
from utils.tokenJWT import require_admin
import schemas.logs as log_schemas

router = APIRouter(prefix="/api/logs", tags=["Logs"])


def _parse_day(value: str, end_of_day: bool = False) -> datetime:
    # Plain dates cover the whole day when used as an upper bound
    if len(value) == 10 and end_of_day:
        value += " 23:59:59"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise invalid(f"Fecha no válida: {value}")


@router.get("", response_model=log_schemas.LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, description="Filter by user ID"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="Filter by status (SUCCESS/FAIL/WARNING)"),
    date_from: Optional[str] = Query(None, description="From date (YYYY-MM-DD)"),
    date_to: Optional[str] = Query(None, description="To date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    query = db.query(AuditLog)

    if action:
        query = query.filter(AuditLog.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if resource:
        query = query.filter(AuditLog.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(AuditLog.status == status.upper())
    if date_from:
        query = query.filter(AuditLog.ts >= _parse_day(date_from))
    if date_to:
        query = query.filter(AuditLog.ts <= _parse_day(date_to, end_of_day=True))

    query = query.order_by(AuditLog.ts.desc(), AuditLog.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return {"items": logs, "total": total, "page": page, "page_size": page_size}
