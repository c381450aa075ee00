"""
Servicio de asignaciones.

Crear y finalizar escriben la asignación y el estado del equipo en una sola
transacción: o se aplican los dos cambios o ninguno.
"""
import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventario.core.errors import parse_uuid
from inventario.core.responses import utcnow
from inventario.modules.equipos.models import Asignacion, Equipo
from inventario.modules.equipos.schemas import AsignacionOut, EquipoResumen
from inventario.modules.equipos.services.equipos import asignacion_activa, get_equipo_or_404
from inventario.modules.usuarios.models import Usuario
from inventario.modules.usuarios.schemas import UsuarioResumen

logger = logging.getLogger(__name__)

YA_ASIGNADO = "Este equipo ya está asignado a otro usuario"


def get_asignacion_or_404(db: Session, asignacion_id: str) -> Asignacion:
    aid = parse_uuid(asignacion_id, "ID de asignación no válido")
    asignacion = db.query(Asignacion).filter(Asignacion.id == aid).first()
    if not asignacion:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asignación no encontrada")
    return asignacion


def crear_asignacion(db: Session, payload) -> Asignacion:
    """Entrega un equipo: nueva asignación activa y equipo en estado Asignado."""
    try:
        usuario_id = UUID(payload.usuario)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="El usuario no existe")
    usuario = db.query(Usuario).filter(Usuario.id == usuario_id).first()
    if not usuario:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="El usuario no existe")
    if not usuario.activo:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No se puede asignar un equipo a un usuario inactivo",
        )

    try:
        equipo = get_equipo_or_404(db, payload.equipo)
    except HTTPException:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="El equipo no existe")

    if asignacion_activa(db, equipo) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=YA_ASIGNADO)

    asignacion = Asignacion(
        usuario_id=usuario.id,
        equipo_id=equipo.id,
        accesorios=payload.accesorios.model_dump(by_alias=True),
        comentario=payload.comentario,
        fecha_asignacion=payload.fecha_asignacion or utcnow(),
        activo=True,
    )
    db.add(asignacion)
    try:
        db.flush()
        equipo.estado = "Asignado"
        equipo.ultima_asignacion = asignacion.id
        db.commit()
    except IntegrityError:
        # El índice único parcial detectó otra asignación activa creada en paralelo
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=YA_ASIGNADO)
    db.refresh(asignacion)
    logger.info("Equipo %s asignado a %s", equipo.id_equipo, usuario.email)
    return asignacion


def finalizar_asignacion(
    db: Session, asignacion: Asignacion, motivo: Optional[str] = None
) -> Asignacion:
    """Devolución: la asignación deja de estar activa y el equipo pasa a Reposo."""
    if not asignacion.activo:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La asignación ya fue finalizada",
        )
    equipo = db.query(Equipo).filter(Equipo.id == asignacion.equipo_id).first()
    asignacion.activo = False
    asignacion.fecha_devolucion = utcnow()
    if motivo is not None:
        asignacion.motivo_devolucion = motivo
    if equipo is not None:
        equipo.estado = "Reposo"
        equipo.ultima_asignacion = asignacion.id
    db.commit()
    db.refresh(asignacion)
    logger.info(
        "Asignación %s finalizada; equipo %s en Reposo",
        asignacion.id,
        equipo.id_equipo if equipo is not None else "-",
    )
    return asignacion


def serialize_asignaciones(db: Session, asignaciones: Iterable[Asignacion]) -> List[AsignacionOut]:
    """AsignacionOut con resumen de usuario y equipo (dos consultas in_, sin joins implícitos)."""
    asignaciones = list(asignaciones)
    usuario_ids = {a.usuario_id for a in asignaciones}
    equipo_ids = {a.equipo_id for a in asignaciones}
    usuarios: Dict[UUID, Usuario] = {}
    if usuario_ids:
        usuarios = {u.id: u for u in db.query(Usuario).filter(Usuario.id.in_(usuario_ids)).all()}
    equipos: Dict[UUID, Equipo] = {}
    if equipo_ids:
        equipos = {e.id: e for e in db.query(Equipo).filter(Equipo.id.in_(equipo_ids)).all()}

    result = []
    for a in asignaciones:
        out = AsignacionOut.model_validate(
            {
                "id": a.id,
                "usuario_id": a.usuario_id,
                "equipo_id": a.equipo_id,
                "accesorios": a.accesorios or {},
                "comentario": a.comentario,
                "fecha_asignacion": a.fecha_asignacion,
                "fecha_devolucion": a.fecha_devolucion,
                "motivo_devolucion": a.motivo_devolucion,
                "activo": a.activo,
                "created_at": a.created_at,
                "updated_at": a.updated_at,
            }
        )
        if a.usuario_id in usuarios:
            out.usuario = UsuarioResumen.model_validate(usuarios[a.usuario_id])
        if a.equipo_id in equipos:
            out.equipo = EquipoResumen.model_validate(equipos[a.equipo_id])
        result.append(out)
    return result
