from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from stockroom.api.auth import get_current_user
from stockroom.database import get_db
from stockroom.models.user import User
from stockroom.schemas.category import CategoryCreate, CategoryOut, CategoryQuickCreate, CategoryUpdate
from stockroom.services import category_service

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return category_service.list_categories(db, user.id)


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(data: CategoryCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return category_service.create_category(db, user.id, data)


@router.post("/quick", response_model=CategoryOut, status_code=201)
def create_category_quick(
    data: CategoryQuickCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return category_service.create_category_quick(db, user.id, data.name)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    category = category_service.get_category(db, user.id, category_id)
    if not category:
        raise HTTPException(404, "Category not found")
    return category


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str, data: CategoryUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    category = category_service.update_category(db, user.id, category_id, data)
    if not category:
        raise HTTPException(404, "Category not found")
    return category


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        deleted = category_service.delete_category(db, user.id, category_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not deleted:
        raise HTTPException(404, "Category not found")
