"""Store service routers package."""

from services.store_service.routers.admin_orders import router as admin_orders_router
from services.store_service.routers.admin_stats import router as admin_stats_router
from services.store_service.routers.admin_vouches import router as admin_vouches_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.vouches import router as vouches_router

__all__ = [
    "admin_orders_router",
    "admin_stats_router",
    "admin_vouches_router",
    "orders_router",
    "vouches_router",
]
