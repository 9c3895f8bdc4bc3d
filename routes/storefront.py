from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.db import get_db
from core.tenancy import get_public_store, get_store_by_domain
from models.category import Category
from models.product import Product
from models.store import Store
from schemas.category import CategoryOut
from schemas.order import CheckoutRequest, CheckoutResponse, OrderOut
from schemas.product import ProductOut
from services.orders import CheckoutError, checkout
from services.stores import store_settings

router = APIRouter(prefix="/storefront", tags=["storefront"])


def _render_storefront(db: Session, store: Store, q: Optional[str] = None, category_id: Optional[int] = None) -> Dict[str, Any]:
    categories = (
        db.query(Category)
        .filter(Category.store_id == store.id)
        .order_by(Category.sort_order, Category.id)
        .all()
    )
    products = db.query(Product).filter(Product.store_id == store.id, Product.is_available.is_(True))
    if category_id is not None:
        products = products.filter(Product.category_id == category_id)
    if q:
        pattern = f"%{q.strip()}%"
        products = products.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

    cfg = store_settings(store)
    return {
        "store": {
            "id": store.id,
            "name": store.name,
            "slug": store.slug,
            "description": store.description,
            "logo_url": store.logo_url,
            "theme": store.theme or {},
            "currency": cfg.currency,
            "allow_delivery": cfg.allow_delivery,
        },
        "categories": [CategoryOut.model_validate(c) for c in categories],
        "products": [ProductOut.model_validate(p) for p in products.order_by(Product.id).all()],
    }


@router.get("/")
def storefront_by_domain(
    q: Optional[str] = None,
    category_id: Optional[int] = None,
    store: Store = Depends(get_store_by_domain),
    db: Session = Depends(get_db),
):
    return _render_storefront(db, store, q, category_id)


@router.get("/{slug}")
def storefront_home(
    q: Optional[str] = None,
    category_id: Optional[int] = None,
    store: Store = Depends(get_public_store),
    db: Session = Depends(get_db),
):
    return _render_storefront(db, store, q, category_id)


@router.get("/{slug}/products/{product_id}", response_model=ProductOut)
def storefront_product(product_id: int, store: Store = Depends(get_public_store), db: Session = Depends(get_db)):
    product = (
        db.query(Product)
        .filter(Product.store_id == store.id, Product.id == product_id, Product.is_available.is_(True))
        .one_or_none()
    )
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/{slug}/checkout", response_model=CheckoutResponse, status_code=201)
def storefront_checkout(data: CheckoutRequest, store: Store = Depends(get_public_store), db: Session = Depends(get_db)):
    try:
        order, whatsapp_url = checkout(db, store, data)
    except CheckoutError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return CheckoutResponse(order=OrderOut.model_validate(order), whatsapp_url=whatsapp_url)
