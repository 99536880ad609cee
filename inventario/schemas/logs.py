# inventario/schemas/logs.py
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict


class LogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None

    model_config = ConfigDict(from_attributes=True)


class LogPage(BaseModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int
