"""Rutas /users: gestión de usuarios."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from inventario.core.query import QueryBuilder
from inventario.core.responses import Envelope, ok
from inventario.modules.equipos.models import Asignacion, Equipo
from inventario.modules.equipos.schemas import EquipoOut
from inventario.modules.usuarios.dependencies import (
    get_current_user,
    get_db,
    require_admin,
    require_staff,
)
from inventario.modules.usuarios.models import Usuario
from inventario.modules.usuarios.schemas import (
    UsuarioCreate,
    UsuarioListData,
    UsuarioOut,
    UsuarioStats,
    UsuarioUpdate,
)
from inventario.modules.usuarios.services import usuarios as usuarios_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])

USUARIO_FIELDS = {
    "idUsuario": Usuario.id_usuario,
    "nombre": Usuario.nombre,
    "email": Usuario.email,
    "cargo": Usuario.cargo,
    "sede": Usuario.sede,
    "direccion": Usuario.direccion,
    "gerencia": Usuario.gerencia,
    "rol": Usuario.rol,
    "ultimoAcceso": Usuario.ultimo_acceso,
    "createdAt": Usuario.created_at,
}
USUARIO_SEARCH = (Usuario.id_usuario, Usuario.nombre, Usuario.email)


def _forbidden() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="No tienes permisos para realizar esta acción",
    )


@router.get(
    "",
    response_model=Envelope[UsuarioListData],
    dependencies=[Depends(require_staff)],
)
def list_usuarios(request: Request, db: Session = Depends(get_db)):
    """Por defecto solo usuarios activos; ?activo=false los inactivos, ?activo=all todos."""
    builder = QueryBuilder(
        db.query(Usuario),
        request.query_params,
        USUARIO_FIELDS,
        search_fields=USUARIO_SEARCH,
        default_sort="-createdAt",
        tiebreaker=Usuario.id_usuario,
        reserved=("activo",),
    )
    activo = (request.query_params.get("activo") or "true").strip().lower()
    if activo != "all":
        builder.add_condition(
            Usuario.activo == QueryBuilder.coerce("activo", Usuario.activo, activo)
        )
    builder.filter().sort().limit_fields().paginate()

    usuarios = [
        builder.project(UsuarioOut.model_validate(u).model_dump(mode="json", by_alias=True))
        for u in builder.all()
    ]
    total = builder.count()
    return ok(
        UsuarioListData(usuarios=usuarios, pagination=builder.pagination(total, "totalUsuarios")),
        message="Usuarios obtenidos",
    )


@router.get(
    "/stats",
    response_model=Envelope[UsuarioStats],
    dependencies=[Depends(require_staff)],
)
def get_stats(db: Session = Depends(get_db)):
    return ok(UsuarioStats(**usuarios_service.estadisticas(db)))


@router.post(
    "",
    response_model=Envelope[UsuarioOut],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_usuario(payload: UsuarioCreate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude={"rol"})
    user = usuarios_service.crear_usuario(db, data, rol=payload.rol)
    return ok(UsuarioOut.model_validate(user), message="Usuario creado correctamente")


@router.get("/{user_id}", response_model=Envelope[UsuarioOut])
def get_usuario(
    user_id: str,
    db: Session = Depends(get_db),
    current: Usuario = Depends(get_current_user),
):
    user = usuarios_service.get_usuario_or_404(db, user_id)
    if user.id != current.id and not current.has_role("admin", "tecnico"):
        raise _forbidden()
    return ok(UsuarioOut.model_validate(user))


@router.put("/{user_id}", response_model=Envelope[UsuarioOut])
def update_usuario(
    user_id: str,
    payload: UsuarioUpdate,
    db: Session = Depends(get_db),
    current: Usuario = Depends(get_current_user),
):
    """Admin actualiza cualquier usuario; el propio usuario, sus datos salvo rol y activo."""
    user = usuarios_service.get_usuario_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    if not current.has_role("admin"):
        if user.id != current.id:
            raise _forbidden()
        if "rol" in changes or "activo" in changes:
            raise _forbidden()
    if changes.get("activo") is False and user.activo:
        usuarios_service.comprobar_desactivacion(db, user, current.id)
    user = usuarios_service.actualizar_usuario(db, user, changes)
    return ok(UsuarioOut.model_validate(user), message="Usuario actualizado correctamente")


@router.delete("/{user_id}", response_model=Envelope[UsuarioOut])
def deactivate_usuario(
    user_id: str,
    db: Session = Depends(get_db),
    current: Usuario = Depends(require_admin),
):
    """Baja lógica (activo=False)."""
    user = usuarios_service.get_usuario_or_404(db, user_id)
    user = usuarios_service.desactivar_usuario(db, user, current.id)
    return ok(UsuarioOut.model_validate(user), message="Usuario desactivado correctamente")


@router.patch("/{user_id}/reactivate", response_model=Envelope[UsuarioOut], dependencies=[Depends(require_admin)])
def reactivate_usuario(user_id: str, db: Session = Depends(get_db)):
    user = usuarios_service.get_usuario_or_404(db, user_id)
    if user.activo:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="El usuario ya está activo")
    user.activo = True
    db.commit()
    db.refresh(user)
    return ok(UsuarioOut.model_validate(user), message="Usuario reactivado correctamente")


@router.delete("/{user_id}/permanent", response_model=Envelope[None])
def delete_usuario_permanent(
    user_id: str,
    db: Session = Depends(get_db),
    current: Usuario = Depends(require_admin),
):
    """Borrado físico; solo para usuarios sin historial de asignaciones."""
    user = usuarios_service.get_usuario_or_404(db, user_id)
    if user.id == current.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No puede eliminar su propio usuario",
        )
    if usuarios_service.tiene_asignaciones(db, user.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El usuario tiene historial de asignaciones; solo puede desactivarse",
        )
    db.delete(user)
    db.commit()
    logger.info("Usuario eliminado definitivamente: %s", user.email)
    return ok(message="Usuario eliminado definitivamente")


def _equipos_asignados(
    user_id: str,
    db: Session,
    current: Usuario,
):
    user = usuarios_service.get_usuario_or_404(db, user_id)
    if user.id != current.id and not current.has_role("admin", "tecnico"):
        raise _forbidden()
    equipos = (
        db.query(Equipo)
        .join(Asignacion, Asignacion.equipo_id == Equipo.id)
        .filter(Asignacion.usuario_id == user.id, Asignacion.activo.is_(True))
        .order_by(Asignacion.fecha_asignacion.desc())
        .all()
    )
    return ok([EquipoOut.model_validate(eq) for eq in equipos])


@router.get("/{user_id}/equipos", response_model=Envelope[list[EquipoOut]])
def get_equipos_usuario(
    user_id: str,
    db: Session = Depends(get_db),
    current: Usuario = Depends(get_current_user),
):
    """Equipos actualmente asignados al usuario."""
    return _equipos_asignados(user_id, db, current)


@router.get("/{user_id}/equipment", response_model=Envelope[list[EquipoOut]])
def get_equipment_usuario(
    user_id: str,
    db: Session = Depends(get_db),
    current: Usuario = Depends(get_current_user),
):
    return _equipos_asignados(user_id, db, current)
