"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from wellnesstree.api.credits import router as credits_router
from wellnesstree.api.health import router as health_router
from wellnesstree.api.pricing import router as pricing_router
from wellnesstree.api.shipments import router as shipments_router
from wellnesstree.api.shipping import router as shipping_router

__all__ = [
    "credits_router",
    "health_router",
    "pricing_router",
    "shipments_router",
    "shipping_router",
]
