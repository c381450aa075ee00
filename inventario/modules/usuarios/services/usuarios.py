"""Servicio de usuarios: alta, actualización, unicidad y estadísticas."""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from inventario.core.auth import get_password_hash
from inventario.core.config import settings
from inventario.core.errors import parse_uuid
from inventario.modules.equipos.models import Asignacion
from inventario.modules.usuarios.models import ROLES, Usuario

logger = logging.getLogger(__name__)


def normalize_nombre(nombre: str) -> str:
    """'ana  maría pérez' -> 'Ana María Pérez'"""
    return " ".join(p.capitalize() for p in nombre.split())


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_usuario_or_404(db: Session, user_id: str) -> Usuario:
    uid = parse_uuid(user_id, "ID de usuario no válido")
    user = db.query(Usuario).filter(Usuario.id == uid).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")
    return user


def ensure_unique(
    db: Session,
    email: Optional[str] = None,
    id_usuario: Optional[str] = None,
    exclude_id: Optional[UUID] = None,
) -> None:
    """400 si el email o el idUsuario ya pertenecen a otro usuario."""
    if email is not None:
        q = db.query(Usuario.id).filter(Usuario.email == email)
        if exclude_id is not None:
            q = q.filter(Usuario.id != exclude_id)
        if q.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El email ya está registrado",
            )
    if id_usuario is not None:
        q = db.query(Usuario.id).filter(Usuario.id_usuario == id_usuario)
        if exclude_id is not None:
            q = q.filter(Usuario.id != exclude_id)
        if q.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El idUsuario ya está registrado",
            )


def crear_usuario(db: Session, data: Dict[str, Any], rol: str = "user") -> Usuario:
    """
    Alta de usuario en pasos explícitos:
    normalizar -> comprobar unicidad -> hash de contraseña -> persistir.
    """
    data = dict(data)
    data["nombre"] = normalize_nombre(data["nombre"])
    data["email"] = normalize_email(data["email"])
    ensure_unique(db, email=data["email"], id_usuario=data["id_usuario"])

    password = data.pop("password")
    data.pop("rol", None)
    user = Usuario(**data, rol=rol, password_hash=get_password_hash(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Usuario creado: %s (%s)", user.email, user.rol)
    return user


def actualizar_usuario(db: Session, user: Usuario, changes: Dict[str, Any]) -> Usuario:
    changes = dict(changes)
    if changes.get("nombre") is not None:
        changes["nombre"] = normalize_nombre(changes["nombre"])
    if changes.get("email") is not None:
        changes["email"] = normalize_email(changes["email"])
        ensure_unique(db, email=changes["email"], exclude_id=user.id)
    password = changes.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)
    for field, value in changes.items():
        if value is None and field in ("nombre", "email", "cargo", "rol", "activo"):
            continue
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def comprobar_desactivacion(db: Session, user: Usuario, actor_id: UUID) -> None:
    """400 si el usuario es quien hace la petición o si aún tiene equipos asignados."""
    if user.id == actor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No puede desactivar su propio usuario",
        )
    if tiene_asignacion_activa(db, user.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El usuario tiene equipos asignados; finalice las asignaciones primero",
        )


def desactivar_usuario(db: Session, user: Usuario, actor_id: UUID) -> Usuario:
    comprobar_desactivacion(db, user, actor_id)
    user.activo = False
    db.commit()
    db.refresh(user)
    logger.info("Usuario desactivado: %s", user.email)
    return user


def tiene_asignacion_activa(db: Session, user_id: UUID) -> bool:
    return (
        db.query(Asignacion.id)
        .filter(Asignacion.usuario_id == user_id, Asignacion.activo.is_(True))
        .first()
        is not None
    )


def tiene_asignaciones(db: Session, user_id: UUID) -> bool:
    return db.query(Asignacion.id).filter(Asignacion.usuario_id == user_id).first() is not None


def estadisticas(db: Session) -> Dict[str, Any]:
    total = db.query(func.count(Usuario.id)).scalar() or 0
    activos = db.query(func.count(Usuario.id)).filter(Usuario.activo.is_(True)).scalar() or 0
    por_rol = {rol: 0 for rol in ROLES}
    for rol, n in db.query(Usuario.rol, func.count(Usuario.id)).group_by(Usuario.rol).all():
        por_rol[rol] = n
    return {
        "total": total,
        "activos": activos,
        "inactivos": total - activos,
        "por_rol": por_rol,
        "porcentaje_activos": round(activos * 100 / total, 2) if total else 0.0,
    }


def seed_admin(db: Session) -> Optional[Usuario]:
    """Crea el administrador inicial si está habilitado y aún no existe ningún admin."""
    if not settings.seed_admin_enabled:
        return None
    if db.query(Usuario.id).filter(Usuario.rol == "admin").first():
        return None
    email = normalize_email(settings.seed_admin_email)
    if db.query(Usuario.id).filter(Usuario.email == email).first():
        return None
    admin = Usuario(
        id_usuario="admin",
        nombre="Administrador",
        email=email,
        password_hash=get_password_hash(settings.seed_admin_password),
        cargo="Administrador",
        rol="admin",
        activo=True,
    )
    db.add(admin)
    db.commit()
    logger.info("Administrador inicial creado: %s", email)
    return admin
