import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockroom.config import settings
from stockroom.database import Base


# Quantities are stored to thousandths of a unit, prices to the cent
QUANTITY_SCALE = 3
PRICE_SCALE = 2


def to_quantity(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-QUANTITY_SCALE), rounding=ROUND_HALF_UP)


def to_price(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-PRICE_SCALE), rounding=ROUND_HALF_UP)


class StockStatus(str, PyEnum):
    NORMAL = "normal"
    LOW = "low"
    CRITICAL = "critical"


def classify_stock(current_quantity, reorder_level) -> StockStatus:
    current_quantity = Decimal(str(current_quantity))
    reorder_level = Decimal(str(reorder_level))
    if current_quantity <= 0:
        return StockStatus.CRITICAL
    if current_quantity <= reorder_level * Decimal(str(settings.CRITICAL_STOCK_RATIO)):
        return StockStatus.CRITICAL
    if current_quantity <= reorder_level:
        return StockStatus.LOW
    return StockStatus.NORMAL


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("current_quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        CheckConstraint("reorder_level >= 0", name="ck_inventory_items_reorder_level_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_inventory_items_unit_price_non_negative"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[str | None] = mapped_column(String, ForeignKey("categories.id"), nullable=True)
    supplier_id: Mapped[str | None] = mapped_column(String, ForeignKey("suppliers.id"), nullable=True)
    unit: Mapped[str] = mapped_column(String, nullable=False)  # kg, l, pcs, ...
    current_quantity: Mapped[Decimal] = mapped_column(Numeric(14, QUANTITY_SCALE), nullable=False, default=Decimal("0"))
    reorder_level: Mapped[Decimal] = mapped_column(Numeric(14, QUANTITY_SCALE), nullable=False, default=Decimal("0"))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, PRICE_SCALE), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    category: Mapped[Optional["Category"]] = relationship("Category")
    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier")

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    @property
    def supplier_name(self) -> str | None:
        return self.supplier.name if self.supplier else None

    @property
    def stock_value(self) -> Decimal:
        return self.current_quantity * (self.unit_price or Decimal("0"))

    @property
    def stock_status(self) -> str:
        return classify_stock(self.current_quantity, self.reorder_level).value


from stockroom.models.category import Category  # noqa: E402, F401
from stockroom.models.supplier import Supplier  # noqa: E402, F401
