import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockroom.database import Base
from stockroom.models.inventory_item import QUANTITY_SCALE, InventoryItem  # noqa: F401


class MovementType(str, PyEnum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class StockMovement(Base):
    """Append-only ledger entry; every change to an item's stock is one row."""

    __tablename__ = "stock_movements"
    __table_args__ = (
        CheckConstraint("quantity_change <> 0", name="ck_stock_movements_change_non_zero"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(String, ForeignKey("inventory_items.id"), nullable=False, index=True)
    quantity_change: Mapped[Decimal] = mapped_column(Numeric(14, QUANTITY_SCALE), nullable=False)  # positive=in, negative=out
    movement_type: Mapped[MovementType] = mapped_column(
        Enum(MovementType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), index=True)

    item: Mapped["InventoryItem"] = relationship("InventoryItem")

    @property
    def item_name(self) -> str:
        return self.item.name if self.item else ""

    @property
    def unit(self) -> str:
        return self.item.unit if self.item else ""

    @property
    def unit_price(self) -> Decimal:
        return self.item.unit_price if self.item else Decimal("0")

