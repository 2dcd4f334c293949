from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class InventoryItemCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    category_id: str | None = None
    supplier_id: str | None = None
    unit: str = Field(min_length=1)
    current_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    reorder_level: Decimal = Field(default=Decimal("0"), ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)


class InventoryItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category_id: str | None = None
    supplier_id: str | None = None
    unit: str | None = Field(default=None, min_length=1)
    # Direct override of the running total; bypasses the movement ledger
    current_quantity: Decimal | None = Field(default=None, ge=0)
    reorder_level: Decimal | None = Field(default=None, ge=0)
    unit_price: Decimal | None = Field(default=None, ge=0)


class InventoryItemOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    supplier_id: str | None = None
    supplier_name: str | None = None
    unit: str
    current_quantity: float
    reorder_level: float
    unit_price: float
    stock_status: str = "normal"
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
