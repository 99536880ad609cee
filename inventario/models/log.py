# inventario/models/log.py
from sqlalchemy import Column, Integer, String, DateTime, JSON, func
from database import Base


# Audit trail of user actions (logins, catalogue changes, stock movements).
# The acting user is stored by value so deleting an account keeps its history.
class AuditLog(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user_id = Column(Integer, nullable=True, index=True)
    username = Column(String(50), nullable=True)

    action = Column(String(50), index=True)
    resource = Column(String(50), index=True)
    status = Column(String(20), index=True)
    ip = Column(String(64), nullable=True)

    meta = Column(JSON, nullable=True)
