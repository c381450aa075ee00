"""Rutas /asignaciones: entrega y devolución de equipos (solo admin y técnico)."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from inventario.core.query import QueryBuilder
from inventario.core.responses import Envelope, ok
from inventario.modules.equipos.dependencies import get_db, require_staff
from inventario.modules.equipos.models import Asignacion
from inventario.modules.equipos.schemas import (
    AsignacionCreate,
    AsignacionFinalizar,
    AsignacionListData,
    AsignacionOut,
)
from inventario.modules.equipos.services import asignaciones as asignaciones_service
from inventario.modules.equipos.services.equipos import get_equipo_or_404
from inventario.modules.usuarios.services.usuarios import get_usuario_or_404

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/asignaciones",
    tags=["asignaciones"],
    dependencies=[Depends(require_staff)],
)

ASIGNACION_FIELDS = {
    "activo": Asignacion.activo,
    "usuario": Asignacion.usuario_id,
    "equipo": Asignacion.equipo_id,
    "fechaAsignacion": Asignacion.fecha_asignacion,
    "fechaDevolucion": Asignacion.fecha_devolucion,
    "createdAt": Asignacion.created_at,
}


@router.post(
    "",
    response_model=Envelope[AsignacionOut],
    status_code=status.HTTP_201_CREATED,
)
def create_asignacion(payload: AsignacionCreate, db: Session = Depends(get_db)):
    asignacion = asignaciones_service.crear_asignacion(db, payload)
    data = asignaciones_service.serialize_asignaciones(db, [asignacion])[0]
    return ok(data, message="Equipo asignado correctamente")


@router.get("", response_model=Envelope[AsignacionListData])
def list_asignaciones(request: Request, db: Session = Depends(get_db)):
    builder = (
        QueryBuilder(
            db.query(Asignacion),
            request.query_params,
            ASIGNACION_FIELDS,
            default_sort="-fechaAsignacion",
            tiebreaker=Asignacion.created_at,
        )
        .filter()
        .sort()
        .paginate()
    )
    asignaciones = builder.all()
    total = builder.count()
    return ok(
        AsignacionListData(
            asignaciones=asignaciones_service.serialize_asignaciones(db, asignaciones),
            pagination=builder.pagination(total, "totalAsignaciones"),
        )
    )


@router.get("/usuario/{usuario_id}", response_model=Envelope[list[AsignacionOut]])
def list_asignaciones_usuario(usuario_id: str, db: Session = Depends(get_db)):
    usuario = get_usuario_or_404(db, usuario_id)
    asignaciones = (
        db.query(Asignacion)
        .filter(Asignacion.usuario_id == usuario.id)
        .order_by(Asignacion.fecha_asignacion.desc())
        .all()
    )
    return ok(asignaciones_service.serialize_asignaciones(db, asignaciones))


@router.get("/equipo/{equipo_id}", response_model=Envelope[list[AsignacionOut]])
def list_asignaciones_equipo(equipo_id: str, db: Session = Depends(get_db)):
    equipo = get_equipo_or_404(db, equipo_id)
    asignaciones = (
        db.query(Asignacion)
        .filter(Asignacion.equipo_id == equipo.id)
        .order_by(Asignacion.fecha_asignacion.desc())
        .all()
    )
    return ok(asignaciones_service.serialize_asignaciones(db, asignaciones))


@router.get("/{asignacion_id}", response_model=Envelope[AsignacionOut])
def get_asignacion(asignacion_id: str, db: Session = Depends(get_db)):
    asignacion = asignaciones_service.get_asignacion_or_404(db, asignacion_id)
    return ok(asignaciones_service.serialize_asignaciones(db, [asignacion])[0])


@router.put("/{asignacion_id}", response_model=Envelope[AsignacionOut])
def finalize_asignacion(
    asignacion_id: str,
    payload: AsignacionFinalizar | None = None,
    db: Session = Depends(get_db),
):
    """Finaliza la asignación (devolución del equipo)."""
    asignacion = asignaciones_service.get_asignacion_or_404(db, asignacion_id)
    motivo = payload.motivo_devolucion if payload is not None else None
    asignacion = asignaciones_service.finalizar_asignacion(db, asignacion, motivo)
    return ok(
        asignaciones_service.serialize_asignaciones(db, [asignacion])[0],
        message="Asignación finalizada correctamente",
    )
