"""Digital Warranty API routes."""

from services.warranty.routes.warranties import router as warranties_router

__all__ = [
    "warranties_router",
]
