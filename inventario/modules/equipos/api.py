"""
Rutas del módulo de equipos.
Prefijo: /api. Subrutas: /equipos, /asignaciones.
"""

from fastapi import APIRouter

from inventario.core.config import settings

from .routes import asignaciones, equipos

router = APIRouter(prefix=settings.api_prefix)

router.include_router(equipos.router)
router.include_router(asignaciones.router)
