"""
Dependencies de usuarios.
get_db es el común de core; get_current_user y require_roles se apoyan en Usuario.
"""
import logging
from typing import Sequence
from uuid import UUID

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from inventario.core.auth import get_token_payload
from inventario.core.database import get_db as core_get_db
from inventario.modules.usuarios.models import Usuario

logger = logging.getLogger(__name__)

get_db = core_get_db


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    db: Session = Depends(get_db),
    payload: dict = Depends(get_token_payload),
) -> Usuario:
    """Usuario actual a partir del JWT; cualquier fallo es 401."""
    user_id_str = payload.get("sub")
    if not user_id_str:
        raise _unauthorized("Formato de token no válido")
    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise _unauthorized("Formato de token no válido")
    user = db.query(Usuario).filter(Usuario.id == user_id).first()
    if not user:
        raise _unauthorized("El usuario del token ya no existe")
    if not user.activo:
        logger.warning("Acceso con token de usuario desactivado: %s", user.email)
        raise _unauthorized("Usuario desactivado")
    return user


def require_roles(allowed_roles: Sequence[str]):
    """Dependency que exige uno de los roles indicados (403 en caso contrario)."""

    def _checker(user: Usuario = Depends(get_current_user)) -> Usuario:
        if user.has_role(*allowed_roles):
            return user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No tienes permisos para realizar esta acción",
        )

    return _checker


require_admin = require_roles(["admin"])
require_staff = require_roles(["admin", "tecnico"])
