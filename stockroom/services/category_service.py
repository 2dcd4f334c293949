from sqlalchemy.orm import Session

from stockroom.models.category import Category
from stockroom.models.inventory_item import InventoryItem
from stockroom.schemas.category import CategoryCreate, CategoryUpdate


def list_categories(db: Session, owner_id: str) -> list[Category]:
    return db.query(Category).filter(Category.owner_id == owner_id).order_by(Category.name).all()


def get_category(db: Session, owner_id: str, category_id: str) -> Category | None:
    return db.query(Category).filter(Category.id == category_id, Category.owner_id == owner_id).first()


def create_category(db: Session, owner_id: str, data: CategoryCreate) -> Category:
    category = Category(owner_id=owner_id, name=data.name.strip(), description=data.description)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def create_category_quick(db: Session, owner_id: str, name: str) -> Category:
    """Create a category from just a name, as the item form's combobox does."""
    return create_category(db, owner_id, CategoryCreate(name=name))


def update_category(db: Session, owner_id: str, category_id: str, data: CategoryUpdate) -> Category | None:
    category = get_category(db, owner_id, category_id)
    if not category:
        return None
    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, owner_id: str, category_id: str) -> bool:
    category = get_category(db, owner_id, category_id)
    if not category:
        return False
    in_use = db.query(InventoryItem.id).filter(InventoryItem.category_id == category.id).first()
    if in_use:
        raise ValueError("Cannot delete category that has items. Reassign or delete the items first.")
    db.delete(category)
    db.commit()
    return True
