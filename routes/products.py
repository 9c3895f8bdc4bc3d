from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional

from core.db import get_db
from core.tenancy import get_owned_store
from models.store import Store
from models.product import Product
from models.product_variant import ProductVariant
from models.category import Category
from schemas.product import ProductCreate, ProductUpdate, ProductOut, VariantCreate, VariantOut

router = APIRouter(prefix="/stores/{store_id}/products", tags=["products"])


def _get_product(db: Session, store: Store, product_id: int) -> Product:
    product = db.query(Product).filter(Product.store_id == store.id, Product.id == product_id).one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _check_category(db: Session, store: Store, category_id: Optional[int]) -> None:
    if not category_id:
        return
    category = db.query(Category).filter(Category.id == category_id, Category.store_id == store.id).one_or_none()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found for this store")


@router.get("/", response_model=List[ProductOut])
def list_products(
    category_id: Optional[int] = None,
    store: Store = Depends(get_owned_store),
    db: Session = Depends(get_db),
):
    qs = db.query(Product).filter(Product.store_id == store.id)
    if category_id is not None:
        qs = qs.filter(Product.category_id == category_id)
    return qs.order_by(Product.id).all()


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(data: ProductCreate, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    _check_category(db, store, data.category_id)
    product = Product(
        store_id=store.id,
        category_id=data.category_id,
        name=data.name.strip(),
        description=data.description,
        price=data.price,
        compare_at_price=data.compare_at_price,
        images=data.images,
        sku=data.sku,
        stock=data.stock,
        is_available=data.is_available,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    return _get_product(db, store, product_id)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, data: ProductUpdate, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    product = _get_product(db, store, product_id)
    changes = data.model_dump(exclude_unset=True)

    if "category_id" in changes:
        _check_category(db, store, changes["category_id"])
    if "name" in changes and changes["name"] is not None:
        changes["name"] = changes["name"].strip()

    for field, value in changes.items():
        setattr(product, field, value)

    db.commit()
    db.refresh(product)
    return product


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    product = _get_product(db, store, product_id)
    db.delete(product)
    db.commit()
    return None


@router.get("/{product_id}/variants", response_model=List[VariantOut])
def list_variants(product_id: int, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    product = _get_product(db, store, product_id)
    return db.query(ProductVariant).filter(ProductVariant.product_id == product.id).order_by(ProductVariant.id).all()


@router.post("/{product_id}/variants", response_model=VariantOut, status_code=201)
def create_variant(product_id: int, data: VariantCreate, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    product = _get_product(db, store, product_id)
    if not data.selections:
        raise HTTPException(status_code=400, detail="A variant needs at least one option value")
    variant = ProductVariant(
        product_id=product.id,
        selections=data.selections,
        sku=data.sku,
        price=data.price,
        stock=data.stock,
    )
    db.add(variant)
    db.commit()
    db.refresh(variant)
    return variant


@router.delete("/{product_id}/variants/{variant_id}", status_code=204)
def delete_variant(product_id: int, variant_id: int, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    product = _get_product(db, store, product_id)
    variant = db.query(ProductVariant).filter(ProductVariant.product_id == product.id, ProductVariant.id == variant_id).one_or_none()
    if not variant:
        raise HTTPException(status_code=404, detail="Variant not found")
    db.delete(variant)
    db.commit()
    return None
