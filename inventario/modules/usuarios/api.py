"""
Rutas del módulo de usuarios.
Prefijo: /api. Subrutas: /users.
"""

from fastapi import APIRouter

from inventario.core.config import settings

from .routes import usuarios

router = APIRouter(prefix=settings.api_prefix)

router.include_router(usuarios.router)
