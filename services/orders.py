import logging
import secrets
import string
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from models.order import Order
from models.product import Product
from models.store import Store
from schemas.order import CheckoutRequest
from services.stores import store_settings
from services.whatsapp import format_price, generate_whatsapp_url, render_order_details, render_order_message

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "confirmed", "completed", "cancelled")
_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class CheckoutError(ValueError):
    pass


class ProductUnavailable(CheckoutError):
    pass


def _to_decimal(value: float | int | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def generate_order_number(db: Session) -> str:
    while True:
        number = "ORD-" + "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(6))
        if db.query(Order.id).filter(Order.order_number == number).first() is None:
            return number


def create_order(db: Session, store: Store, data: CheckoutRequest) -> Order:
    if not data.items:
        raise CheckoutError("Your cart is empty")
    cfg = store_settings(store)

    product_ids = [item.product_id for item in data.items]
    products_map = {
        p.id: p for p in db.query(Product).filter(Product.store_id == store.id, Product.id.in_(product_ids)).all()
    }
    missing = set(product_ids) - set(products_map)
    if missing:
        raise ProductUnavailable("One or more products were not found in this store")

    subtotal = Decimal("0.00")
    lines: List[dict] = []
    for item in data.items:
        product = products_map[item.product_id]
        if not product.is_available:
            raise ProductUnavailable(f"{product.name} is currently unavailable")
        price = _to_decimal(product.price)
        total = price * item.quantity
        subtotal += total
        # Snapshot name and price so later catalog edits leave the order intact
        lines.append({
            "product_id": product.id,
            "product_name": product.name,
            "price": float(price),
            "quantity": item.quantity,
            "total": float(total),
        })

    if cfg.minimum_order and subtotal < _to_decimal(cfg.minimum_order):
        raise CheckoutError(f"Minimum order is {format_price(cfg.minimum_order, cfg.currency)}")

    delivery_fee = Decimal("0.00")
    if data.delivery_method == "delivery":
        if not cfg.allow_delivery:
            raise CheckoutError("This store does not offer delivery")
        delivery_fee = _to_decimal(cfg.delivery_fee)

    order = Order(
        store_id=store.id,
        order_number=generate_order_number(db),
        items=lines,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        total=subtotal + delivery_fee,
        customer_name=data.customer_name.strip(),
        customer_phone=data.customer_phone.strip(),
        notes=data.notes,
        delivery_method=data.delivery_method,
        status="pending",
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Order %s placed in store %s", order.order_number, store.id)
    return order


def build_order_message(store: Store, order: Order) -> str:
    cfg = store_settings(store)
    details = render_order_details(order.items, cfg.currency)
    return render_order_message(cfg.order_message_template, {
        "orderDetails": details,
        "total": format_price(order.total, cfg.currency),
        "customerName": order.customer_name,
        "customerPhone": order.customer_phone,
        "notes": order.notes or "-",
    })


def checkout(db: Session, store: Store, data: CheckoutRequest) -> Tuple[Order, Optional[str]]:
    """Place the order and build the WhatsApp link that relays it to the merchant."""
    order = create_order(db, store, data)
    if not store.whatsapp_number:
        return order, None
    return order, generate_whatsapp_url(store.whatsapp_number, build_order_message(store, order))


def update_order_status(db: Session, order: Order, status: str) -> Order:
    if status not in ORDER_STATUSES:
        raise CheckoutError(f"Unknown order status: {status}")
    order.status = status
    db.commit()
    db.refresh(order)
    return order
