from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from stockroom.api.auth import get_current_user
from stockroom.database import get_db
from stockroom.models.user import User
from stockroom.schemas.inventory_item import InventoryItemCreate, InventoryItemOut, InventoryItemUpdate
from stockroom.schemas.movement import MovementOut
from stockroom.services import item_service, ledger_service

router = APIRouter(prefix="/items", tags=["Inventory Items"])


@router.post("", response_model=InventoryItemOut, status_code=201)
def create_item(data: InventoryItemCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return item_service.create_item(db, user.id, data)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.get("", response_model=list[InventoryItemOut])
def list_items(
    category_id: str | None = None, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return item_service.list_items(db, user.id, category_id=category_id)


@router.get("/low-stock", response_model=list[InventoryItemOut])
def low_stock(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return item_service.get_low_stock(db, user.id)


@router.get("/{item_id}", response_model=InventoryItemOut)
def get_item(item_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    item = item_service.get_item(db, user.id, item_id)
    if not item:
        raise HTTPException(404, "Item not found")
    return item


@router.patch("/{item_id}", response_model=InventoryItemOut)
def update_item(
    item_id: str, data: InventoryItemUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    try:
        item = item_service.update_item(db, user.id, item_id, data)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not item:
        raise HTTPException(404, "Item not found")
    return item


@router.delete("/{item_id}", status_code=204)
def delete_item(item_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        deleted = item_service.delete_item(db, user.id, item_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not deleted:
        raise HTTPException(404, "Item not found")


@router.get("/{item_id}/movements", response_model=list[MovementOut])
def item_movements(
    item_id: str, limit: int | None = None, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    if not item_service.get_item(db, user.id, item_id):
        raise HTTPException(404, "Item not found")
    return ledger_service.list_movements(db, user.id, limit=limit, item_id=item_id)
