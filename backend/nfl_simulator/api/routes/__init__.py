"""
API route modules.
"""

from .seasons_routes import router as seasons_router
from .simulations_routes import router as simulations_router

__all__ = ["seasons_router", "simulations_router"]
