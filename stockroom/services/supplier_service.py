from sqlalchemy.orm import Session

from stockroom.models.inventory_item import InventoryItem
from stockroom.models.supplier import Supplier
from stockroom.schemas.supplier import SupplierCreate, SupplierUpdate


def list_suppliers(db: Session, owner_id: str) -> list[Supplier]:
    return db.query(Supplier).filter(Supplier.owner_id == owner_id).order_by(Supplier.name).all()


def get_supplier(db: Session, owner_id: str, supplier_id: str) -> Supplier | None:
    return db.query(Supplier).filter(Supplier.id == supplier_id, Supplier.owner_id == owner_id).first()


def create_supplier(db: Session, owner_id: str, data: SupplierCreate) -> Supplier:
    supplier = Supplier(owner_id=owner_id, **data.model_dump())
    supplier.name = supplier.name.strip()
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


def update_supplier(db: Session, owner_id: str, supplier_id: str, data: SupplierUpdate) -> Supplier | None:
    supplier = get_supplier(db, owner_id, supplier_id)
    if not supplier:
        return None
    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(supplier, field, value)
    db.commit()
    db.refresh(supplier)
    return supplier


def delete_supplier(db: Session, owner_id: str, supplier_id: str) -> bool:
    supplier = get_supplier(db, owner_id, supplier_id)
    if not supplier:
        return False
    if db.query(InventoryItem.id).filter(InventoryItem.supplier_id == supplier.id).first():
        raise ValueError("Cannot delete supplier that has items. Reassign or delete the items first.")
    db.delete(supplier)
    db.commit()
    return True
