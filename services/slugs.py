import re
import unicodedata

# Paths the platform itself serves; a store slug must not shadow them
RESERVED_SLUGS = frozenset({
    "admin",
    "api",
    "app",
    "auth",
    "billing",
    "cart",
    "checkout",
    "dashboard",
    "docs",
    "forgot-password",
    "health",
    "login",
    "logout",
    "pricing",
    "redoc",
    "register",
    "settings",
    "signup",
    "static",
    "store",
    "stores",
    "storefront",
    "support",
    "verify-email",
    "www",
})

_INVALID_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")
_VALID_SLUG = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def generate_store_slug(name: str) -> str:
    """Derive a URL-safe slug from a store name, e.g. ``"My Café"`` -> ``"my-cafe"``."""
    folded = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = _INVALID_CHARS.sub("", folded.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


def is_reserved_slug(slug: str) -> bool:
    return slug in RESERVED_SLUGS


def is_valid_slug(slug: str) -> bool:
    return bool(_VALID_SLUG.match(slug))
