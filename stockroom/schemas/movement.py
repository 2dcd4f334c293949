from datetime import datetime
from typing import Any

from pydantic import BaseModel

from stockroom.models.stock_movement import MovementType


class MovementCreate(BaseModel):
    # Accepted as sent; ledger_service.validate_movement rejects bad values with a reason
    item_id: Any = None
    quantity: Any = None
    movement_type: Any = None
    note: Any = None


class MovementOut(BaseModel):
    id: str
    item_id: str
    item_name: str = ""
    unit: str = ""
    unit_price: float = 0.0
    quantity_change: float
    movement_type: MovementType
    note: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MovementFailure(BaseModel):
    detail: str
    reason: str
    field: str | None = None
