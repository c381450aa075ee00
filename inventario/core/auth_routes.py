"""
Rutas de autenticación: login, registro, logout, verificación de token y perfil
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from inventario.core.auth import (
    clear_session_cookie,
    create_access_token,
    get_password_hash,
    set_session_cookie,
    verify_password,
)
from inventario.core.config import settings
from inventario.core.database import get_db
from inventario.core.responses import Envelope, ok, utcnow
from inventario.modules.equipos.models import Asignacion, Equipo
from inventario.modules.equipos.schemas import EquipoResumen
from inventario.modules.usuarios.dependencies import get_current_user
from inventario.modules.usuarios.models import Usuario
from inventario.modules.usuarios.schemas import (
    ChangePassword,
    LoginRequest,
    RegistroRequest,
    SesionOut,
    UsuarioOut,
    VerifyTokenOut,
)
from inventario.modules.usuarios.services.usuarios import crear_usuario, normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.api_prefix}/auth", tags=["auth"])


class EquipoAsignadoOut(EquipoResumen):
    fecha_asignacion: Optional[datetime] = None


class PerfilOut(UsuarioOut):
    equipos_asignados: List[EquipoAsignadoOut] = []


def _issue_session(response: Response, user: Usuario) -> SesionOut:
    token = create_access_token(user.id, user.email, user.rol)
    set_session_cookie(response, token)
    return SesionOut(token=token, user=UsuarioOut.model_validate(user))


@router.post("/login", response_model=Envelope[SesionOut])
def login(login_data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """
    Inicio de sesión.
    Recibe email y password; devuelve el JWT y además lo deja en una cookie httpOnly.
    """
    email = normalize_email(login_data.email)
    user = (
        db.query(Usuario)
        .filter(Usuario.email == email, Usuario.activo.is_(True))
        .first()
    )
    if not user or not verify_password(login_data.password, user.password_hash):
        logger.warning("Intento de login fallido para %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email o contraseña incorrectos",
        )

    user.ultimo_acceso = utcnow()
    db.commit()
    db.refresh(user)
    return ok(_issue_session(response, user), message="Inicio de sesión exitoso")


@router.post("/register", response_model=Envelope[SesionOut], status_code=status.HTTP_201_CREATED)
def register(payload: RegistroRequest, response: Response, db: Session = Depends(get_db)):
    """Registro público; el rol siempre es 'user'."""
    user = crear_usuario(db, payload.model_dump(), rol="user")
    return ok(_issue_session(response, user), message="Usuario registrado correctamente")


@router.post("/logout", response_model=Envelope[None])
def logout(response: Response):
    clear_session_cookie(response)
    return ok(message="Sesión cerrada correctamente")


@router.post("/verify-token", response_model=Envelope[VerifyTokenOut])
def verify_token(user: Usuario = Depends(get_current_user)):
    return ok(VerifyTokenOut(valid=True, user=UsuarioOut.model_validate(user)), message="Token válido")


@router.get("/me", response_model=Envelope[PerfilOut])
def get_me(user: Usuario = Depends(get_current_user), db: Session = Depends(get_db)):
    """Perfil del usuario actual con los equipos que tiene asignados."""
    rows = (
        db.query(Equipo, Asignacion.fecha_asignacion)
        .join(Asignacion, Asignacion.equipo_id == Equipo.id)
        .filter(Asignacion.usuario_id == user.id, Asignacion.activo.is_(True))
        .order_by(Asignacion.fecha_asignacion.desc())
        .all()
    )
    perfil = PerfilOut.model_validate(user)
    perfil.equipos_asignados = [
        EquipoAsignadoOut(
            **EquipoResumen.model_validate(eq).model_dump(),
            fecha_asignacion=fecha,
        )
        for eq, fecha in rows
    ]
    return ok(perfil)


@router.put("/change-password", response_model=Envelope[None])
def change_password(
    payload: ChangePassword,
    user: Usuario = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La contraseña actual es incorrecta",
        )
    user.password_hash = get_password_hash(payload.new_password)
    db.commit()
    logger.info("Contraseña cambiada: %s", user.email)
    return ok(message="Contraseña actualizada correctamente")
