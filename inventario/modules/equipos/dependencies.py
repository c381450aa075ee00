"""
Dependencies del módulo de equipos.
Reutiliza get_db de core y la autenticación del módulo de usuarios.
"""
from inventario.core.database import get_db as core_get_db
from inventario.modules.usuarios.dependencies import (
    get_current_user,
    require_admin,
    require_staff,
)

get_db = core_get_db

__all__ = ["get_db", "get_current_user", "require_admin", "require_staff"]
