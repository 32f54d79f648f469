"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.imports import router as imports_router
from routes.mappings import router as mappings_router

__all__ = [
    "imports_router",
    "mappings_router",
]
