from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from stockroom.api.auth import get_current_user
from stockroom.database import get_db
from stockroom.models.user import User
from stockroom.schemas.supplier import SupplierCreate, SupplierOut, SupplierQuickCreate, SupplierUpdate
from stockroom.services import supplier_service

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


@router.get("", response_model=list[SupplierOut])
def list_suppliers(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return supplier_service.list_suppliers(db, user.id)


@router.post("", response_model=SupplierOut, status_code=201)
def create_supplier(data: SupplierCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return supplier_service.create_supplier(db, user.id, data)


@router.post("/quick", response_model=SupplierOut, status_code=201)
def create_supplier_quick(
    data: SupplierQuickCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return supplier_service.create_supplier(db, user.id, SupplierCreate(name=data.name))


@router.get("/{supplier_id}", response_model=SupplierOut)
def get_supplier(supplier_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    supplier = supplier_service.get_supplier(db, user.id, supplier_id)
    if not supplier:
        raise HTTPException(404, "Supplier not found")
    return supplier


@router.patch("/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: str, data: SupplierUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    supplier = supplier_service.update_supplier(db, user.id, supplier_id, data)
    if not supplier:
        raise HTTPException(404, "Supplier not found")
    return supplier


@router.delete("/{supplier_id}", status_code=204)
def delete_supplier(supplier_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        deleted = supplier_service.delete_supplier(db, user.id, supplier_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not deleted:
        raise HTTPException(404, "Supplier not found")
