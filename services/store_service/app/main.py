"""FastAPI application for the Store Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import configure_logging
from services.store_service.routers import (
    admin_orders_router,
    admin_stats_router,
    admin_vouches_router,
    orders_router,
    vouches_router,
)


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    configure_logging()

    app = FastAPI(
        title="The Turkish Shop Store Service",
        version="0.1.0",
        description="Digital goods orders, delivery e-mails, reviews and admin reporting.",
    )
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    # Public store routes (order history, tracking, vouches)
    app.include_router(orders_router, prefix="/store")
    app.include_router(vouches_router, prefix="/store")

    # Admin routes (order lifecycle, moderation, reporting)
    app.include_router(admin_orders_router, prefix="/admin/store")
    app.include_router(admin_vouches_router, prefix="/admin/store")
    app.include_router(admin_stats_router, prefix="/admin/store")

    return app


app = create_app()
