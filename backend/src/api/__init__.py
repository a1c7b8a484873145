# API routes module
# Contains all API endpoint definitions

from .portfolio_routes import router as portfolio_router
from .public_routes import router as public_router
from .template_routes import router as template_router

__all__ = ["portfolio_router", "public_router", "template_router"]
