# Import models so that SQLAlchemy metadata includes them on app startup
from .user import User  # noqa: F401
from .store import Store  # noqa: F401
from .store_domain import StoreDomain  # noqa: F401
from .domain_audit import DomainAudit  # noqa: F401
from .sweep_lease import SweepLease  # noqa: F401
from .plan import Plan  # noqa: F401
from .subscription import Subscription  # noqa: F401
from .invoice import Invoice  # noqa: F401
from .invoice_payment import InvoicePayment  # noqa: F401
from .category import Category  # noqa: F401
from .product import Product  # noqa: F401
from .product_variant import ProductVariant  # noqa: F401
from .order import Order  # noqa: F401
