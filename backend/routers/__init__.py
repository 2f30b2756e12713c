# backend/routers/__init__.py
"""
FastAPI роутеры
"""

from .entities import router as entities_router
from .favorites import router as favorites_router
from .guides import router as guides_router
from .areas import router as areas_router
from .upload import router as upload_router
from .health import router as health_router

__all__ = [
    'entities_router',
    'favorites_router',
    'guides_router',
    'areas_router',
    'upload_router',
    'health_router',
]
