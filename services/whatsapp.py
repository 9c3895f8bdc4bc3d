import os
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader

from schemas.store import DEFAULT_ORDER_MESSAGE_TEMPLATE

WHATSAPP_SEND_URL = "https://api.whatsapp.com/send"


def format_price(amount: Any, currency: Optional[str] = None) -> str:
    try:
        value = Decimal(str(amount))
    except (ArithmeticError, ValueError):
        value = Decimal("0")
    value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{currency or 'USD'} {value:,.2f}"


# Plain-text WhatsApp bodies: no HTML escaping of product names
_templates_env = Environment(
    loader=FileSystemLoader(searchpath=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")),
    autoescape=False,
    keep_trailing_newline=False,
)
_templates_env.filters["price"] = format_price


def render_order_details(items: List[Dict[str, Any]], currency: str) -> str:
    template = _templates_env.get_template("whatsapp/order_details.txt")
    return template.render(items=items, currency=currency).strip("\n")


def render_order_message(template: Optional[str], context: Dict[str, str]) -> str:
    """Fill the merchant's message template; placeholders are ``{orderDetails}``, ``{total}``,
    ``{customerName}``, ``{customerPhone}`` and ``{notes}``."""
    message = (template or "").strip() or DEFAULT_ORDER_MESSAGE_TEMPLATE
    for key, value in context.items():
        message = message.replace("{" + key + "}", value)
    return message


def generate_whatsapp_url(phone: str, message: str) -> str:
    # Full international number: digits only, no '+', spaces or punctuation
    clean_phone = "".join(ch for ch in phone if ch.isdigit())
    return f"{WHATSAPP_SEND_URL}?phone={clean_phone}&text={quote(message, safe='')}"
