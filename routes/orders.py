from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from core.db import get_db
from core.tenancy import get_owned_store
from models.store import Store
from models.order import Order
from schemas.order import OrderOut, OrderStatusUpdate
from services.orders import update_order_status

router = APIRouter(prefix="/stores/{store_id}/orders", tags=["orders"])


def _get_order(db: Session, store: Store, order_id: int) -> Order:
    order = db.query(Order).filter(Order.store_id == store.id, Order.id == order_id).one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/", response_model=List[OrderOut])
def list_orders(
    status: Optional[str] = None,
    store: Store = Depends(get_owned_store),
    db: Session = Depends(get_db),
):
    qs = db.query(Order).filter(Order.store_id == store.id)
    if status:
        qs = qs.filter(Order.status == status)
    return qs.order_by(Order.created_at.desc(), Order.id.desc()).all()


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    return _get_order(db, store, order_id)


@router.patch("/{order_id}", response_model=OrderOut)
def set_order_status(order_id: int, data: OrderStatusUpdate, store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    order = _get_order(db, store, order_id)
    return update_order_status(db, order, data.status)
