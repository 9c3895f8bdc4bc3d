from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from core.db import get_db
from core.tenancy import get_owned_store
from models.store import Store
from models.category import Category
from schemas.category import CategoryCreate, CategoryUpdate, CategoryOut

router = APIRouter(prefix="/stores/{store_id}/categories", tags=["categories"])


def _get_category(db: Session, store: Store, category_id: int) -> Category:
    category = db.query(Category).filter(Category.store_id == store.id, Category.id == category_id).one_or_none()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.get("/", response_model=List[CategoryOut])
def list_categories(store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    return (
        db.query(Category)
        .filter(Category.store_id == store.id)
        .order_by(Category.sort_order, Category.id)
        .all()
    )


@router.post("/", response_model=CategoryOut, status_code=201)
def create_category(data: CategoryCreate, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    category = Category(store_id=store.id, name=data.name.strip(), description=data.description, sort_order=data.sort_order)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(category_id: int, data: CategoryUpdate, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    category = _get_category(db, store, category_id)
    if data.name is not None:
        category.name = data.name.strip()
    if data.description is not None:
        category.description = data.description
    if data.sort_order is not None:
        category.sort_order = data.sort_order
    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    category = _get_category(db, store, category_id)
    db.delete(category)
    db.commit()
    return None
