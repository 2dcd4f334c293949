"""Stock movement ledger.

Recording a movement runs four steps: validate the request, turn the entered
quantity into a signed delta, check that outbound deltas are covered by stock,
and write the movement together with the item's new running total in one
transaction.

The stock check is done twice. ``check_stock`` rejects early with the
quantity just read, and ``apply_movement`` repeats the condition inside the
UPDATE itself so that two concurrent requests cannot both pass it.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from stockroom.config import settings
from stockroom.models.inventory_item import QUANTITY_SCALE, InventoryItem, to_quantity
from stockroom.models.stock_movement import MovementType, StockMovement

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "validation_error"
NOT_FOUND = "not_found"
INSUFFICIENT_STOCK = "insufficient_stock"
PERSISTENCE_ERROR = "persistence_error"

# Numeric(14, 3) leaves eleven integer digits
MAX_QUANTITY = Decimal("99999999999.999")


def format_quantity(quantity) -> str:
    return f"{quantity:.3f}".rstrip("0").rstrip(".")


class LedgerError(Exception):
    reason = PERSISTENCE_ERROR
    field: str | None = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MovementValidationError(LedgerError):
    reason = VALIDATION_ERROR

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ItemNotFoundError(LedgerError):
    reason = NOT_FOUND

    def __init__(self, item_id: str):
        super().__init__("Item not found")
        self.item_id = item_id


class InsufficientStockError(LedgerError):
    reason = INSUFFICIENT_STOCK

    def __init__(self, available: Decimal, unit: str):
        super().__init__(f"Insufficient stock. Only {format_quantity(available)} {unit} available")
        self.available = available
        self.unit = unit


class PersistenceError(LedgerError):
    reason = PERSISTENCE_ERROR


@dataclass
class MovementResult:
    success: bool
    movement: StockMovement | None = None
    item: InventoryItem | None = None
    reason: str | None = None
    message: str | None = None
    field: str | None = None

    @classmethod
    def failure(cls, exc: LedgerError) -> "MovementResult":
        return cls(success=False, reason=exc.reason, message=exc.message, field=exc.field)


def validate_movement(
    item_id: str | None,
    quantity,
    movement_type,
    note: str | None = None,
) -> tuple[Decimal, MovementType, str | None]:
    """Check the shape of a movement request without touching the database.

    Returns the quantity as a Decimal rounded to thousandths, the movement
    type as an enum member and the cleaned note (blank notes become None).
    """
    if not isinstance(item_id, str) or not item_id.strip():
        raise MovementValidationError("item_id", "Item is required")

    if quantity is None or isinstance(quantity, bool):
        raise MovementValidationError("quantity", "Quantity must be a number")
    try:
        quantity = Decimal(str(quantity))
    except (InvalidOperation, ValueError, TypeError):
        raise MovementValidationError("quantity", "Quantity must be a number") from None
    if not quantity.is_finite():
        raise MovementValidationError("quantity", "Quantity must be a finite number")
    if abs(quantity) > MAX_QUANTITY:
        raise MovementValidationError("quantity", f"Quantity must be at most {format_quantity(MAX_QUANTITY)}")
    quantity = to_quantity(quantity)
    if quantity == 0:
        raise MovementValidationError("quantity", "Change cannot be zero")

    try:
        movement_type = MovementType(movement_type)
    except (ValueError, TypeError):
        raise MovementValidationError(
            "movement_type", f"Unknown movement type {movement_type!r}, expected in, out or adjustment"
        ) from None

    if note is not None and not isinstance(note, str):
        raise MovementValidationError("note", "Note must be text")
    if note is not None:
        note = note.strip() or None
    if note and len(note) > settings.MAX_NOTE_LENGTH:
        raise MovementValidationError("note", f"Note must be at most {settings.MAX_NOTE_LENGTH} characters")

    return quantity, movement_type, note


def normalize_quantity(quantity, movement_type: MovementType):
    """Signed delta to persist: in adds, out removes, adjustment keeps the entered sign."""
    if movement_type is MovementType.IN:
        return abs(quantity)
    if movement_type is MovementType.OUT:
        return -abs(quantity)
    return quantity


def check_stock(current_quantity, delta, unit: str) -> None:
    if delta < 0 and abs(delta) > current_quantity:
        raise InsufficientStockError(current_quantity, unit)


def get_owned_item(db: Session, owner_id: str, item_id: str) -> InventoryItem | None:
    return db.execute(
        select(InventoryItem).where(InventoryItem.id == item_id, InventoryItem.owner_id == owner_id)
    ).scalar_one_or_none()


def apply_movement(
    db: Session,
    owner_id: str,
    item_id: str,
    delta: Decimal,
    movement_type: MovementType,
    note: str | None = None,
) -> StockMovement:
    """Apply ``delta`` to the item and append the movement row.

    Flushes but does not commit; the caller owns the transaction. The UPDATE
    only matches while the resulting quantity stays non-negative, so a zero
    rowcount means the item is gone or the stock is no longer there. The new
    quantity is rounded to the stored scale in SQL, since SQLite adds the
    operands as binary floats.
    """
    new_quantity = func.round(InventoryItem.current_quantity + delta, QUANTITY_SCALE)
    result = db.execute(
        update(InventoryItem)
        .where(
            InventoryItem.id == item_id,
            InventoryItem.owner_id == owner_id,
            new_quantity >= 0,
        )
        .values(current_quantity=new_quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        row = db.execute(
            select(InventoryItem.current_quantity, InventoryItem.unit).where(
                InventoryItem.id == item_id, InventoryItem.owner_id == owner_id
            )
        ).first()
        if row is None:
            raise ItemNotFoundError(item_id)
        raise InsufficientStockError(row.current_quantity, row.unit)

    movement = StockMovement(
        owner_id=owner_id,
        item_id=item_id,
        quantity_change=delta,
        movement_type=movement_type,
        note=note,
    )
    db.add(movement)
    db.flush()
    return movement


def record_movement(
    db: Session,
    owner_id: str,
    item_id: str | None,
    quantity,
    movement_type,
    note: str | None = None,
) -> MovementResult:
    """Record a stock movement for an item owned by ``owner_id``.

    Never raises for rejected movements: the result carries one of
    ``validation_error``, ``not_found``, ``insufficient_stock`` or
    ``persistence_error`` and nothing is written in that case.
    """
    try:
        quantity, movement_type, note = validate_movement(item_id, quantity, movement_type, note)
        delta = normalize_quantity(quantity, movement_type)

        item = get_owned_item(db, owner_id, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        check_stock(item.current_quantity, delta, item.unit)

        movement = apply_movement(db, owner_id, item.id, delta, movement_type, note)
        movement_id, unit = movement.id, item.unit
        db.commit()
    except LedgerError as exc:
        db.rollback()
        logger.info("Movement rejected for item %s (%s): %s", item_id, exc.reason, exc.message)
        return MovementResult.failure(exc)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record movement for item %s", item_id)
        return MovementResult.failure(PersistenceError("Failed to record movement"))

    # Committed from here on; a failed reload must not turn into a rejection
    try:
        db.refresh(movement)
        db.refresh(item)
    except SQLAlchemyError:
        logger.exception("Recorded movement %s for item %s but could not reload it", movement_id, item_id)
    else:
        logger.info(
            "Recorded %s movement %s for item %s: %s %s, balance %s",
            movement_type.value, movement_id, item_id,
            format_quantity(delta), unit, format_quantity(item.current_quantity),
        )
    return MovementResult(success=True, movement=movement, item=item)


def list_movements(
    db: Session,
    owner_id: str,
    limit: int | None = None,
    item_id: str | None = None,
    movement_type: MovementType | None = None,
) -> list[StockMovement]:
    q = (
        db.query(StockMovement)
        .options(joinedload(StockMovement.item))
        .filter(StockMovement.owner_id == owner_id)
    )
    if item_id:
        q = q.filter(StockMovement.item_id == item_id)
    if movement_type:
        q = q.filter(StockMovement.movement_type == movement_type)
    return (
        q.order_by(StockMovement.created_at.desc(), StockMovement.id)
        .limit(limit or settings.DEFAULT_MOVEMENT_LIMIT)
        .all()
    )


def count_movements(
    db: Session,
    owner_id: str,
    item_id: str | None = None,
    movement_type: MovementType | None = None,
) -> int:
    q = db.query(StockMovement).filter(StockMovement.owner_id == owner_id)
    if item_id:
        q = q.filter(StockMovement.item_id == item_id)
    if movement_type:
        q = q.filter(StockMovement.movement_type == movement_type)
    return q.count()
