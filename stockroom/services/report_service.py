from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from stockroom.models.inventory_item import InventoryItem, StockStatus, classify_stock, to_quantity
from stockroom.models.stock_movement import MovementType, StockMovement
from stockroom.services import ledger_service

ZERO = Decimal("0")


class Interval(str, PyEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def _utcnow() -> datetime:
    # created_at is stored as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def interval_start(now: datetime, interval: Interval) -> datetime:
    if interval == Interval.WEEKLY:
        return now - timedelta(weeks=12)
    if interval == Interval.MONTHLY:
        year, month = divmod(now.year * 12 + now.month - 1 - 12, 12)
        return now.replace(year=year, month=month + 1, day=min(now.day, 28))
    return now - timedelta(days=30)


def bucket_key(moment: datetime, interval: Interval) -> str:
    if interval == Interval.WEEKLY:
        iso = moment.isocalendar()
        return f"{iso.year}-W{iso.week:02d}"
    if interval == Interval.MONTHLY:
        return moment.strftime("%Y-%m")
    return moment.strftime("%Y-%m-%d")


def _items(db: Session, owner_id: str) -> list[InventoryItem]:
    return db.query(InventoryItem).filter(InventoryItem.owner_id == owner_id).order_by(InventoryItem.name).all()


def _movement_row(m: StockMovement) -> dict:
    return {
        "id": m.id,
        "item_id": m.item_id,
        "item_name": m.item_name,
        "unit": m.unit,
        "quantity_change": float(m.quantity_change),
        "movement_type": m.movement_type.value,
        "note": m.note,
        "created_at": m.created_at.isoformat() if m.created_at else None,
    }


def _movements_since(db: Session, owner_id: str, start: datetime) -> list[StockMovement]:
    return (
        db.query(StockMovement)
        .filter(StockMovement.owner_id == owner_id, StockMovement.created_at >= start)
        .order_by(StockMovement.created_at.asc())
        .all()
    )


def recent_movements(db: Session, owner_id: str, limit: int = 10) -> list[dict]:
    movements = (
        db.query(StockMovement)
        .options(joinedload(StockMovement.item))
        .filter(StockMovement.owner_id == owner_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id)
        .limit(limit)
        .all()
    )
    return [_movement_row(m) for m in movements]


def movement_breakdown(db: Session, owner_id: str) -> list[dict]:
    counts = dict(
        db.query(StockMovement.movement_type, func.count(StockMovement.id))
        .filter(StockMovement.owner_id == owner_id)
        .group_by(StockMovement.movement_type)
        .all()
    )
    return [{"type": t.value, "count": int(counts.get(t, 0))} for t in MovementType]


def low_stock_report(db: Session, owner_id: str) -> list[dict]:
    items = (
        db.query(InventoryItem)
        .filter(InventoryItem.owner_id == owner_id, InventoryItem.current_quantity <= InventoryItem.reorder_level)
        .order_by(InventoryItem.name)
        .all()
    )
    return [
        {
            "id": i.id,
            "name": i.name,
            "current_quantity": float(i.current_quantity),
            "reorder_level": float(i.reorder_level),
            "unit": i.unit,
            "status": i.stock_status,
        }
        for i in items
    ]


def value_trend(db: Session, owner_id: str, interval: Interval = Interval.DAILY, now: datetime | None = None) -> list[dict]:
    """Inventory value at the end of each interval bucket that saw movements.

    Rebuilt backwards from today's value: a bucket's closing value is the
    current total minus the value change of every later bucket. Values use
    today's unit prices.
    """
    now = now or _utcnow()
    items = _items(db, owner_id)
    total_value = sum((i.stock_value for i in items), ZERO)
    prices = {i.id: i.unit_price or ZERO for i in items}

    changes: dict[str, Decimal] = {}
    for m in _movements_since(db, owner_id, interval_start(now, interval)):
        key = bucket_key(m.created_at, interval)
        changes[key] = changes.get(key, ZERO) + m.quantity_change * prices.get(m.item_id, ZERO)

    later = sum(changes.values(), ZERO)
    trend = []
    for key in sorted(changes):
        later -= changes[key]
        trend.append({"date": key, "value": float(max(ZERO, round(total_value - later, 2)))})
    return trend


def dashboard_summary(
    db: Session, owner_id: str, interval: Interval = Interval.DAILY, now: datetime | None = None
) -> dict:
    now = now or _utcnow()
    items = _items(db, owner_id)
    low_stock = [i for i in items if i.current_quantity <= i.reorder_level]
    statuses = {classify_stock(i.current_quantity, i.reorder_level) for i in low_stock}
    if StockStatus.CRITICAL in statuses:
        low_stock_status = StockStatus.CRITICAL
    elif low_stock:
        low_stock_status = StockStatus.LOW
    else:
        low_stock_status = StockStatus.NORMAL

    prices = {i.id: i.unit_price or ZERO for i in items}
    interval_movements = _movements_since(db, owner_id, interval_start(now, interval))
    value_moved = sum((abs(m.quantity_change) * prices.get(m.item_id, ZERO) for m in interval_movements), ZERO)
    total_movements = ledger_service.count_movements(db, owner_id)

    return {
        "interval": interval.value,
        "total_items": len(items),
        "low_stock_count": len(low_stock),
        "low_stock_status": low_stock_status.value,
        "total_inventory_value": float(round(sum((i.stock_value for i in items), ZERO), 2)),
        "interval_movements_count": len(interval_movements),
        "interval_value_moved": float(round(value_moved, 2)),
        "total_movements_count": total_movements,
        "recent_movements": recent_movements(db, owner_id, limit=5),
        "movement_breakdown": movement_breakdown(db, owner_id),
        "value_trend": value_trend(db, owner_id, interval, now=now),
    }


def reconciliation(db: Session, owner_id: str) -> dict:
    """Compare each item's stored running total with the sum of its movements.

    The two only disagree after an item edit overrode the quantity directly.
    """
    sums = dict(
        db.query(StockMovement.item_id, func.sum(StockMovement.quantity_change))
        .filter(StockMovement.owner_id == owner_id)
        .group_by(StockMovement.item_id)
        .all()
    )
    items = _items(db, owner_id)
    drifted = []
    for item in items:
        ledger_total = to_quantity(sums.get(item.id) or ZERO)
        drift = item.current_quantity - ledger_total
        if drift != 0:
            drifted.append({
                "id": item.id,
                "name": item.name,
                "unit": item.unit,
                "current_quantity": float(item.current_quantity),
                "ledger_quantity": float(ledger_total),
                "drift": float(drift),
            })
    return {"items_checked": len(items), "drifted_count": len(drifted), "drifted": drifted}
