"""Servicio de equipos: búsqueda por id, alta, actualización y baja."""

import logging
from typing import Any, Dict, List

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventario.core.errors import parse_uuid
from inventario.modules.equipos.models import (
    ESTADOS_DISPONIBLES,
    ESTADOS_EQUIPO,
    TIPOS_EQUIPO,
    Asignacion,
    Equipo,
)
from inventario.modules.equipos.services.identifiers import (
    PREFIJO,
    registrar_id_manual,
    siguiente_id_equipo,
)

logger = logging.getLogger(__name__)


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def get_equipo_or_404(db: Session, ref: str) -> Equipo:
    """Busca por idEquipo si la referencia empieza por 'EQ-'; si no, por UUID (400 si no lo es)."""
    if ref.upper().startswith(PREFIJO):
        equipo = db.query(Equipo).filter(Equipo.id_equipo == ref.upper()).first()
    else:
        uid = parse_uuid(ref, "ID de equipo no válido")
        equipo = db.query(Equipo).filter(Equipo.id == uid).first()
    if not equipo:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Equipo no encontrado")
    return equipo


def asignacion_activa(db: Session, equipo: Equipo):
    return (
        db.query(Asignacion)
        .filter(Asignacion.equipo_id == equipo.id, Asignacion.activo.is_(True))
        .first()
    )


def _ensure_serial_libre(db: Session, serial: str, exclude=None) -> None:
    q = db.query(Equipo.id).filter(Equipo.serial == serial)
    if exclude is not None:
        q = q.filter(Equipo.id != exclude)
    if q.first():
        raise _bad_request("El serial ya está registrado")


def _apply_nested(data: Dict[str, Any]) -> Dict[str, Any]:
    """garantia -> dos columnas; especificaciones -> JSON con claves camelCase."""
    garantia = data.pop("garantia", None)
    if garantia is not None:
        data["garantia_vencimiento"] = garantia.fecha_vencimiento
        data["garantia_estado"] = garantia.estado
    if data.get("especificaciones") is not None:
        data["especificaciones"] = data["especificaciones"].model_dump(by_alias=True, exclude_none=True)
    return data


def crear_equipo(db: Session, payload) -> Equipo:
    """
    Alta en pasos explícitos:
    normalizar -> comprobar serial -> identificador -> persistir.
    """
    if payload.estado == "Asignado":
        raise _bad_request("Un equipo nuevo no puede crearse como Asignado; use una asignación")
    data = _apply_nested({name: getattr(payload, name) for name in type(payload).model_fields})
    _ensure_serial_libre(db, data["serial"])

    id_equipo = data.pop("id_equipo", None)
    if id_equipo:
        if db.query(Equipo.id).filter(Equipo.id_equipo == id_equipo).first():
            raise _bad_request(f"El idEquipo '{id_equipo}' ya existe")
        registrar_id_manual(db, id_equipo)
    else:
        id_equipo = siguiente_id_equipo(db)

    equipo = Equipo(**data, id_equipo=id_equipo)
    db.add(equipo)
    db.commit()
    db.refresh(equipo)
    logger.info("Equipo creado: %s (serial %s)", equipo.id_equipo, equipo.serial)
    return equipo


def actualizar_equipo(db: Session, equipo: Equipo, payload) -> Equipo:
    """Actualización parcial; idEquipo es inmutable y Asignado solo se alcanza asignando."""
    data = {name: getattr(payload, name) for name in payload.model_fields_set}
    nuevo_id = data.pop("id_equipo", None)
    if nuevo_id is not None and nuevo_id != equipo.id_equipo:
        raise _bad_request("El idEquipo no se puede modificar")

    nuevo_estado = data.get("estado")
    if nuevo_estado is not None and nuevo_estado != equipo.estado:
        if nuevo_estado == "Asignado":
            raise _bad_request("El estado Asignado solo se establece creando una asignación")
        if equipo.estado == "Asignado" and asignacion_activa(db, equipo) is not None:
            raise _bad_request(
                "El equipo tiene una asignación activa; finalícela antes de cambiar su estado"
            )

    if data.get("serial") is not None:
        _ensure_serial_libre(db, data["serial"], exclude=equipo.id)

    data = _apply_nested(data)
    columnas = Equipo.__table__.columns
    for field, value in data.items():
        # null explícito en una columna NOT NULL conserva el valor actual
        if value is None and not columnas[field].nullable:
            continue
        setattr(equipo, field, value)
    db.commit()
    db.refresh(equipo)
    return equipo


def eliminar_equipo(db: Session, equipo: Equipo) -> None:
    """Baja física; se bloquea mientras alguna asignación no tenga fecha de devolución."""
    abiertas = (
        db.query(Asignacion.id)
        .filter(Asignacion.equipo_id == equipo.id, Asignacion.fecha_devolucion.is_(None))
        .first()
    )
    if abiertas:
        raise _bad_request("No se puede eliminar un equipo con una asignación activa")
    db.query(Asignacion).filter(Asignacion.equipo_id == equipo.id).delete(
        synchronize_session=False
    )
    db.delete(equipo)
    db.commit()
    logger.info("Equipo eliminado: %s", equipo.id_equipo)


def equipos_disponibles(db: Session) -> List[Equipo]:
    activas = select(Asignacion.equipo_id).where(Asignacion.activo.is_(True))
    return (
        db.query(Equipo)
        .filter(Equipo.estado.in_(ESTADOS_DISPONIBLES), Equipo.id.not_in(activas))
        .order_by(Equipo.id_equipo.asc())
        .all()
    )


def estadisticas(db: Session) -> Dict[str, Any]:
    por_estado = {estado: 0 for estado in ESTADOS_EQUIPO}
    for estado, n in db.query(Equipo.estado, func.count(Equipo.id)).group_by(Equipo.estado).all():
        por_estado[estado] = n
    por_tipo = {tipo: 0 for tipo in TIPOS_EQUIPO}
    for tipo, n in db.query(Equipo.tipo_equipo, func.count(Equipo.id)).group_by(Equipo.tipo_equipo).all():
        por_tipo[tipo] = n
    return {
        "total": sum(por_estado.values()),
        "por_estado": por_estado,
        "por_tipo": por_tipo,
        "disponibles": len(equipos_disponibles(db)),
    }
