# inventario/routes/health.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    body = {"status": "UP", "database": "UP", "timestamp": datetime.now(timezone.utc).isoformat()}
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        body.update(status="DOWN", database="DOWN")
        return JSONResponse(status_code=503, content=body)
    return body
