"""
API module.
"""

from .routes import seasons_router, simulations_router

__all__ = [
    "seasons_router",
    "simulations_router",
]
