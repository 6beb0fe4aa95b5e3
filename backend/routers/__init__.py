"""
Router registry — imports and exports all API routers.
"""
from routers.health import router as health_router
from tls_identity.routes import router as ssl_router

all_routers = [
    health_router,
    ssl_router,
]

__all__ = ["all_routers"]
