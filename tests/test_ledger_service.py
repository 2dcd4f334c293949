# tests/test_ledger_service.py
import math
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from stockroom.models.stock_movement import MovementType, StockMovement
from stockroom.services import ledger_service
from stockroom.services.ledger_service import (
    InsufficientStockError,
    MovementValidationError,
    check_stock,
    normalize_quantity,
    record_movement,
    validate_movement,
)
from tests.factories import make_item, snapshot


# --- sign normalization ---

@pytest.mark.parametrize("raw", [4, -4, 0.25, -0.25])
def test_in_is_always_positive(raw):
    assert normalize_quantity(raw, MovementType.IN) == abs(raw)


@pytest.mark.parametrize("raw", [4, -4, 0.25, -0.25])
def test_out_is_always_negative(raw):
    assert normalize_quantity(raw, MovementType.OUT) == -abs(raw)


@pytest.mark.parametrize("raw", [3, -3, 0.5, -0.5])
def test_adjustment_keeps_entered_sign(raw):
    assert normalize_quantity(raw, MovementType.ADJUSTMENT) == raw


# --- stock guard ---

def test_guard_allows_reaching_exactly_zero():
    check_stock(5, -5, "kg")


def test_guard_rejects_by_smallest_excess():
    with pytest.raises(InsufficientStockError) as exc:
        check_stock(5, -5.01, "kg")
    assert exc.value.available == 5
    assert exc.value.unit == "kg"
    assert exc.value.message == "Insufficient stock. Only 5 kg available"


def test_guard_never_rejects_positive_delta():
    check_stock(0, 100, "kg")


def test_guard_rejects_negative_adjustment_beyond_stock():
    with pytest.raises(InsufficientStockError):
        check_stock(2, -3, "l")


# --- validation ---

def test_validate_returns_typed_values():
    quantity, movement_type, note = validate_movement("item-1", "2.5", "out", "  ")
    assert quantity == Decimal("2.500")
    assert movement_type is MovementType.OUT
    assert note is None


@pytest.mark.parametrize(
    "item_id, quantity, movement_type, field",
    [
        ("", 1, "in", "item_id"),
        ("   ", 1, "in", "item_id"),
        (None, 1, "in", "item_id"),
        ("item-1", 0, "in", "quantity"),
        ("item-1", 0.0, "adjustment", "quantity"),
        ("item-1", math.nan, "in", "quantity"),
        ("item-1", math.inf, "in", "quantity"),
        ("item-1", "lots", "in", "quantity"),
        ("item-1", None, "in", "quantity"),
        ("item-1", 0.0004, "in", "quantity"),
        ("item-1", "1e12", "in", "quantity"),
        (42, 1, "in", "item_id"),
        ("item-1", True, "in", "quantity"),
        ("item-1", 1, "transfer", "movement_type"),
        ("item-1", 1, "IN", "movement_type"),
        ("item-1", 1, None, "movement_type"),
        ("item-1", 1, ["in"], "movement_type"),
    ],
)
def test_validate_rejects(item_id, quantity, movement_type, field):
    with pytest.raises(MovementValidationError) as exc:
        validate_movement(item_id, quantity, movement_type)
    assert exc.value.field == field
    assert exc.value.reason == "validation_error"


def test_validate_rounds_to_thousandths():
    quantity, _, _ = validate_movement("item-1", 0.12345, "in")
    assert quantity == Decimal("0.123")

    quantity, _, _ = validate_movement("item-1", "-1.0005", "adjustment")
    assert quantity == Decimal("-1.001")


def test_validate_rejects_non_text_note():
    with pytest.raises(MovementValidationError) as exc:
        validate_movement("item-1", 1, "in", 7)
    assert exc.value.field == "note"


def test_validate_rejects_long_note(monkeypatch):
    monkeypatch.setattr(ledger_service.settings, "MAX_NOTE_LENGTH", 10)
    with pytest.raises(MovementValidationError) as exc:
        validate_movement("item-1", 1, "in", "x" * 11)
    assert exc.value.field == "note"


def test_zero_quantity_rejected_before_store_access():
    fake_db = MagicMock(spec=Session)
    result = record_movement(fake_db, "owner", "item-1", 0, "out")
    assert not result.success
    assert result.reason == "validation_error"
    assert result.field == "quantity"
    fake_db.execute.assert_not_called()
    fake_db.query.assert_not_called()
    fake_db.add.assert_not_called()
    fake_db.commit.assert_not_called()


# --- record_movement scenarios ---

def test_out_movement_decreases_quantity(db, user):
    item = make_item(db, user, quantity=10, unit="kg")

    result = record_movement(db, user.id, item.id, 4, "out")

    assert result.success
    assert result.reason is None
    assert result.item.current_quantity == 6
    assert result.movement.quantity_change == -4
    assert result.movement.movement_type is MovementType.OUT
    assert result.movement.created_at is not None


def test_out_beyond_stock_is_rejected_and_changes_nothing(db, user):
    item = make_item(db, user, quantity=5, unit="kg")
    before = snapshot(db, item.id)

    result = record_movement(db, user.id, item.id, 7, "out")

    assert not result.success
    assert result.reason == "insufficient_stock"
    assert "5" in result.message and "kg" in result.message
    assert snapshot(db, item.id) == before


def test_in_movement_on_empty_item(db, user):
    item = make_item(db, user, quantity=0)

    result = record_movement(db, user.id, item.id, 20, "in")

    assert result.success
    assert result.item.current_quantity == 20
    assert result.movement.quantity_change == 20


def test_negative_adjustment(db, user):
    item = make_item(db, user, quantity=10)

    result = record_movement(db, user.id, item.id, -3, "adjustment", note="Spoiled in walk-in")

    assert result.success
    assert result.item.current_quantity == 7
    assert result.movement.quantity_change == -3
    assert result.movement.note == "Spoiled in walk-in"


def test_out_of_entire_stock_leaves_zero(db, user):
    item = make_item(db, user, quantity=12.5)

    result = record_movement(db, user.id, item.id, 12.5, "out")

    assert result.success
    assert result.item.current_quantity == 0


def test_out_entered_as_negative_magnitude(db, user):
    item = make_item(db, user, quantity=10)

    result = record_movement(db, user.id, item.id, -4, "out")

    assert result.success
    assert result.movement.quantity_change == -4
    assert result.item.current_quantity == 6


def test_in_entered_as_negative_magnitude(db, user):
    item = make_item(db, user, quantity=1)

    result = record_movement(db, user.id, item.id, -2, MovementType.IN)

    assert result.movement.quantity_change == 2
    assert result.item.current_quantity == 3


def test_signed_changes_track_running_total(db, user):
    item = make_item(db, user, quantity=0)
    steps = [("in", 8, 8), ("out", 3, 5), ("adjustment", 1.5, 6.5), ("adjustment", -6.5, 0), ("in", 2, 2)]

    for movement_type, raw, expected in steps:
        result = record_movement(db, user.id, item.id, raw, movement_type)
        assert result.success
        assert result.item.current_quantity == Decimal(str(expected))

    total = sum(m.quantity_change for m in db.query(StockMovement).filter(StockMovement.item_id == item.id))
    assert total == 2


def test_missing_item_is_not_found(db, user):
    result = record_movement(db, user.id, "no-such-item", 1, "in")

    assert not result.success
    assert result.reason == "not_found"
    assert db.query(StockMovement).count() == 0


def test_other_owners_item_is_not_found(db, user, other_user):
    item = make_item(db, other_user, quantity=10)
    before = snapshot(db, item.id)

    result = record_movement(db, user.id, item.id, 1, "out")

    assert result.reason == "not_found"
    assert snapshot(db, item.id) == before


def test_negative_adjustment_beyond_stock_is_rejected(db, user):
    item = make_item(db, user, quantity=2, unit="l")
    before = snapshot(db, item.id)

    result = record_movement(db, user.id, item.id, -3, "adjustment")

    assert result.reason == "insufficient_stock"
    assert result.message == "Insufficient stock. Only 2 l available"
    assert snapshot(db, item.id) == before


def test_validation_failure_changes_nothing(db, user):
    item = make_item(db, user, quantity=4)
    before = snapshot(db, item.id)

    result = record_movement(db, user.id, item.id, 3, "borrow")

    assert result.reason == "validation_error"
    assert result.field == "movement_type"
    assert snapshot(db, item.id) == before


def test_persistence_failure_rolls_back_both_writes(db, user, monkeypatch):
    item = make_item(db, user, quantity=10)
    before = snapshot(db, item.id)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)
    result = record_movement(db, user.id, item.id, 4, "out")

    assert not result.success
    assert result.reason == "persistence_error"
    assert result.message == "Failed to record movement"
    assert snapshot(db, item.id) == before


def test_guard_inside_update_catches_stale_read(db, user, monkeypatch):
    # The early check sees stale stock; the conditional UPDATE must still refuse
    item = make_item(db, user, quantity=3, unit="kg")
    monkeypatch.setattr(ledger_service, "check_stock", lambda current, delta, unit: None)
    before = snapshot(db, item.id)

    result = record_movement(db, user.id, item.id, 5, "out")

    assert result.reason == "insufficient_stock"
    assert result.message == "Insufficient stock. Only 3 kg available"
    assert snapshot(db, item.id) == before


def test_decimal_ins_then_exact_out_leaves_zero(db, user):
    item = make_item(db, user, quantity=0, unit="kg")

    assert record_movement(db, user.id, item.id, 0.1, "in").success
    assert record_movement(db, user.id, item.id, 0.2, "in").success
    result = record_movement(db, user.id, item.id, 0.3, "out")

    assert result.success
    qty, rows = snapshot(db, item.id)
    assert qty == 0
    assert sum(r[2] for r in rows) == 0


def test_decimal_outs_can_empty_the_item(db, user):
    item = make_item(db, user, quantity=0.3, unit="kg")

    first = record_movement(db, user.id, item.id, 0.1, "out")
    second = record_movement(db, user.id, item.id, 0.2, "out")

    assert first.success
    assert second.success, second.message
    assert second.item.current_quantity == 0
    assert snapshot(db, item.id)[0] == Decimal("0")


def test_decimal_excess_reports_remaining_stock(db, user):
    item = make_item(db, user, quantity=0.3, unit="kg")
    record_movement(db, user.id, item.id, 0.1, "out")

    result = record_movement(db, user.id, item.id, 0.201, "out")

    assert result.reason == "insufficient_stock"
    assert result.message == "Insufficient stock. Only 0.2 kg available"


def test_reload_failure_after_commit_still_reports_success(db, user, monkeypatch):
    item = make_item(db, user, quantity=10)

    def failing_refresh(instance, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "refresh", failing_refresh)
    result = record_movement(db, user.id, item.id, 4, "out")
    monkeypatch.undo()

    assert result.success
    assert result.reason is None
    qty, rows = snapshot(db, item.id)
    assert qty == 6
    assert [r[2] for r in rows] == [-4]


# --- listing ---

def test_list_movements_filters_and_joins_item(db, user):
    flour = make_item(db, user, name="Flour", quantity=50, unit="kg", unit_price=1.2)
    oil = make_item(db, user, name="Olive oil", quantity=10, unit="l")
    record_movement(db, user.id, flour.id, 5, "out")
    record_movement(db, user.id, oil.id, 2, "in")
    record_movement(db, user.id, flour.id, 1, "adjustment")

    everything = ledger_service.list_movements(db, user.id)
    assert len(everything) == 3

    outs = ledger_service.list_movements(db, user.id, movement_type=MovementType.OUT)
    assert [(m.item_name, m.unit, m.unit_price, m.quantity_change) for m in outs] == [("Flour", "kg", Decimal("1.20"), -5)]

    for_flour = ledger_service.list_movements(db, user.id, item_id=flour.id)
    assert {m.quantity_change for m in for_flour} == {-5, 1}

    assert len(ledger_service.list_movements(db, user.id, limit=1)) == 1
    assert ledger_service.count_movements(db, user.id, item_id=oil.id) == 1
    assert ledger_service.count_movements(db, user.id, movement_type=MovementType.OUT) == 1
    assert ledger_service.count_movements(db, user.id) == 3


def test_list_movements_is_owner_scoped(db, user, other_user):
    theirs = make_item(db, other_user, quantity=5)
    record_movement(db, other_user.id, theirs.id, 1, "out")

    assert ledger_service.list_movements(db, user.id) == []
