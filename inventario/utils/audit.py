import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.log import AuditLog

logger = logging.getLogger(__name__)


def client_ip(request) -> Optional[str]:
    if request is None or request.client is None:
        return None
    return request.client.host


def write_log(db: Session, *, user=None, action, resource, status="SUCCESS", request=None, meta=None):
    """Append an audit entry in its own commit. Call it after the business transaction."""
    entry = AuditLog(
        user_id=user.id if user is not None else None,
        username=user.username if user is not None else None,
        action=action,
        resource=resource,
        status=status,
        ip=client_ip(request),
        meta=meta or {},
    )
    db.add(entry)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Could not write audit entry {action}/{resource}")
        raise
