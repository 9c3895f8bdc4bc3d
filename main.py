import logging
import os
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

import models  # noqa: F401  registers every table on Base.metadata
from core.celery import celery_app
from core.config import settings
from core.db import Base, engine
from routes.admin import router as admin_router
from routes.auth import router as auth_router
from routes.billing import router as billing_router
from routes.categories import router as categories_router
from routes.domains import router as domains_router
from routes.orders import router as orders_router
from routes.products import router as products_router
from routes.storefront import router as storefront_router
from routes.stores import router as stores_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

# Ensure tables exist (for dev/test; in prod use Alembic)
Base.metadata.create_all(bind=engine)

app.include_router(auth_router)
app.include_router(stores_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(orders_router)
app.include_router(storefront_router)
app.include_router(domains_router)
app.include_router(billing_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
    }


@app.get("/celery-health")
def celery_health_check():
    """Check Celery worker status"""
    try:
        stats = celery_app.control.inspect(timeout=1.0).stats()
    except Exception as exc:
        logger.warning("Celery inspect failed: %s", exc)
        return {"status": "unhealthy", "error": str(exc)}
    if stats:
        return {"status": "healthy", "workers": len(stats)}
    return {"status": "no_workers", "message": "No Celery workers running"}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.DEBUG,
    )
