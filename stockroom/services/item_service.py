import logging
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from stockroom.models.inventory_item import InventoryItem, to_price, to_quantity
from stockroom.models.stock_movement import MovementType, StockMovement
from stockroom.schemas.inventory_item import InventoryItemCreate, InventoryItemUpdate
from stockroom.services import category_service, ledger_service, supplier_service

logger = logging.getLogger(__name__)

# NOT NULL columns; an explicit null in an update leaves them unchanged
_REQUIRED_FIELDS = {"name", "unit", "current_quantity", "reorder_level", "unit_price"}
_QUANTITY_FIELDS = {"current_quantity", "reorder_level"}


def _check_references(db: Session, owner_id: str, category_id: str | None, supplier_id: str | None) -> None:
    if category_id and not category_service.get_category(db, owner_id, category_id):
        raise ValueError(f"Category {category_id} not found")
    if supplier_id and not supplier_service.get_supplier(db, owner_id, supplier_id):
        raise ValueError(f"Supplier {supplier_id} not found")


def _owned(db: Session, owner_id: str):
    return (
        db.query(InventoryItem)
        .options(joinedload(InventoryItem.category), joinedload(InventoryItem.supplier))
        .filter(InventoryItem.owner_id == owner_id)
    )


def create_item(db: Session, owner_id: str, data: InventoryItemCreate) -> InventoryItem:
    _check_references(db, owner_id, data.category_id, data.supplier_id)
    item = InventoryItem(
        owner_id=owner_id,
        name=data.name.strip(),
        description=data.description,
        category_id=data.category_id,
        supplier_id=data.supplier_id,
        unit=data.unit.strip(),
        current_quantity=Decimal("0"),
        reorder_level=to_quantity(data.reorder_level),
        unit_price=to_price(data.unit_price),
    )
    db.add(item)
    db.flush()

    # Opening stock goes through the ledger so the movement sum matches the running total
    opening = to_quantity(data.current_quantity)
    if opening > 0:
        ledger_service.apply_movement(
            db, owner_id, item.id, opening, MovementType.IN,
            note="Initial stock on item creation",
        )

    db.commit()
    db.refresh(item)
    return item


def get_item(db: Session, owner_id: str, item_id: str) -> InventoryItem | None:
    return _owned(db, owner_id).filter(InventoryItem.id == item_id).first()


def list_items(db: Session, owner_id: str, category_id: str | None = None) -> list[InventoryItem]:
    q = _owned(db, owner_id)
    if category_id:
        q = q.filter(InventoryItem.category_id == category_id)
    return q.order_by(InventoryItem.name).all()


def update_item(db: Session, owner_id: str, item_id: str, data: InventoryItemUpdate) -> InventoryItem | None:
    item = get_item(db, owner_id, item_id)
    if not item:
        return None
    update_data = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field not in _REQUIRED_FIELDS
    }
    for field in _QUANTITY_FIELDS & update_data.keys():
        update_data[field] = to_quantity(update_data[field])
    if "unit_price" in update_data:
        update_data["unit_price"] = to_price(update_data["unit_price"])
    _check_references(db, owner_id, update_data.get("category_id"), update_data.get("supplier_id"))

    new_qty = update_data.get("current_quantity")
    if new_qty is not None and new_qty != item.current_quantity:
        logger.warning(
            "Quantity of item %s overridden outside the ledger: %s -> %s",
            item.id, item.current_quantity, new_qty,
        )

    for field, value in update_data.items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


def delete_item(db: Session, owner_id: str, item_id: str) -> bool:
    item = get_item(db, owner_id, item_id)
    if not item:
        return False
    if db.query(StockMovement.id).filter(StockMovement.item_id == item.id).first():
        raise ValueError("Cannot delete item that has stock movements.")
    db.delete(item)
    db.commit()
    return True


def get_low_stock(db: Session, owner_id: str) -> list[InventoryItem]:
    return (
        _owned(db, owner_id)
        .filter(InventoryItem.current_quantity <= InventoryItem.reorder_level)
        .order_by(InventoryItem.name)
        .all()
    )
