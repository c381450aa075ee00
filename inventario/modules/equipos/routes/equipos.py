"""Rutas /equipos: inventario de equipos."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic.alias_generators import to_camel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from inventario.core.query import QueryBuilder, escape_like
from inventario.core.responses import Envelope, ok
from inventario.modules.equipos.dependencies import (
    get_current_user,
    get_db,
    require_admin,
    require_staff,
)
from inventario.modules.equipos.models import ESTADOS_EQUIPO, Asignacion, Equipo
from inventario.modules.equipos.schemas import (
    AsignacionOut,
    EquipoCreate,
    EquipoEstadisticas,
    EquipoListData,
    EquipoOut,
    EquipoSearchData,
    EquipoUpdate,
    MigracionIdsOut,
)
from inventario.modules.equipos.services import equipos as equipos_service
from inventario.modules.equipos.services.asignaciones import serialize_asignaciones
from inventario.modules.equipos.services.identifiers import asignar_ids_faltantes

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/equipos", tags=["equipos"])

# Campos públicos filtrables y ordenables
EQUIPO_FIELDS = {
    "idEquipo": Equipo.id_equipo,
    "serial": Equipo.serial,
    "marca": Equipo.marca,
    "modelo": Equipo.modelo,
    "tipoEquipo": Equipo.tipo_equipo,
    "estado": Equipo.estado,
    "ubicacion": Equipo.ubicacion,
    "proveedor": Equipo.proveedor,
    "valorCompra": Equipo.valor_compra,
    "fechaAdquisicion": Equipo.fecha_adquisicion,
    "garantiaVencimiento": Equipo.garantia_vencimiento,
    "garantiaEstado": Equipo.garantia_estado,
    "createdAt": Equipo.created_at,
    "updatedAt": Equipo.updated_at,
}
EQUIPO_SEARCH = (
    Equipo.id_equipo,
    Equipo.serial,
    Equipo.marca,
    Equipo.modelo,
    Equipo.tipo_equipo,
    Equipo.estado,
)
EQUIPO_PROJECTABLE = {to_camel(name) for name in EquipoOut.model_fields}


def _dump(eq: Equipo) -> Dict[str, Any]:
    return EquipoOut.model_validate(eq).model_dump(mode="json", by_alias=True)


@router.get(
    "",
    response_model=Envelope[EquipoListData],
    dependencies=[Depends(get_current_user)],
)
def list_equipos(request: Request, db: Session = Depends(get_db)):
    builder = (
        QueryBuilder(
            db.query(Equipo),
            request.query_params,
            EQUIPO_FIELDS,
            search_fields=EQUIPO_SEARCH,
            default_sort="-createdAt",
            tiebreaker=Equipo.id_equipo,
            projectable=EQUIPO_PROJECTABLE,
        )
        .filter()
        .sort()
        .limit_fields()
        .paginate()
    )
    equipos = [builder.project(_dump(eq)) for eq in builder.all()]
    total = builder.count()
    return ok(
        EquipoListData(equipos=equipos, pagination=builder.pagination(total, "totalEquipos")),
        message="Equipos obtenidos",
    )


@router.get(
    "/search",
    response_model=Envelope[EquipoSearchData],
    dependencies=[Depends(get_current_user)],
)
def search_equipos(
    q: str = Query("", description="Texto a buscar en idEquipo, serial, marca, modelo, tipo y estado"),
    db: Session = Depends(get_db),
):
    term = q.strip()
    if not term:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Debe indicar un término de búsqueda",
        )
    pattern = f"%{escape_like(term)}%"
    equipos = (
        db.query(Equipo)
        .filter(or_(*[c.ilike(pattern, escape="\\") for c in EQUIPO_SEARCH]))
        .order_by(Equipo.created_at.desc())
        .limit(100)
        .all()
    )
    data = [EquipoOut.model_validate(eq) for eq in equipos]
    return ok(EquipoSearchData(equipos=data, total=len(data)), message=f"{len(data)} equipos encontrados")


@router.get(
    "/estado/{estado}",
    response_model=Envelope[list[EquipoOut]],
    dependencies=[Depends(get_current_user)],
)
def list_equipos_por_estado(estado: str, db: Session = Depends(get_db)):
    if estado not in ESTADOS_EQUIPO:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Estado no válido. Valores permitidos: {', '.join(ESTADOS_EQUIPO)}",
        )
    equipos = (
        db.query(Equipo)
        .filter(Equipo.estado == estado)
        .order_by(Equipo.created_at.desc())
        .all()
    )
    return ok([EquipoOut.model_validate(eq) for eq in equipos])


@router.get(
    "/serial/{serial}",
    response_model=Envelope[EquipoOut],
    dependencies=[Depends(get_current_user)],
)
def get_equipo_por_serial(serial: str, db: Session = Depends(get_db)):
    equipo = db.query(Equipo).filter(Equipo.serial == serial.strip().upper()).first()
    if not equipo:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No se encontró un equipo con ese serial",
        )
    return ok(EquipoOut.model_validate(equipo))


@router.get(
    "/disponibles",
    response_model=Envelope[list[EquipoOut]],
    dependencies=[Depends(get_current_user)],
)
def list_equipos_disponibles(db: Session = Depends(get_db)):
    return ok([EquipoOut.model_validate(eq) for eq in equipos_service.equipos_disponibles(db)])


@router.get(
    "/estadisticas",
    response_model=Envelope[EquipoEstadisticas],
    dependencies=[Depends(require_staff)],
)
def get_estadisticas(db: Session = Depends(get_db)):
    return ok(EquipoEstadisticas(**equipos_service.estadisticas(db)))


@router.post(
    "/migrar-ids",
    response_model=Envelope[MigracionIdsOut],
    dependencies=[Depends(require_admin)],
)
def migrar_ids(db: Session = Depends(get_db)):
    """Asigna EQ-#### a los equipos que aún no tienen identificador."""
    ids = asignar_ids_faltantes(db)
    return ok(
        MigracionIdsOut(actualizados=len(ids), ids=ids),
        message=f"{len(ids)} equipos actualizados",
    )


@router.post(
    "",
    response_model=Envelope[EquipoOut],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_staff)],
)
def create_equipo(payload: EquipoCreate, db: Session = Depends(get_db)):
    equipo = equipos_service.crear_equipo(db, payload)
    return ok(EquipoOut.model_validate(equipo), message="Equipo creado correctamente")


@router.get(
    "/{equipo_id}",
    response_model=Envelope[EquipoOut],
    dependencies=[Depends(get_current_user)],
)
def get_equipo(equipo_id: str, db: Session = Depends(get_db)):
    return ok(EquipoOut.model_validate(equipos_service.get_equipo_or_404(db, equipo_id)))


@router.get(
    "/{equipo_id}/historial",
    response_model=Envelope[list[AsignacionOut]],
    dependencies=[Depends(get_current_user)],
)
def get_historial(equipo_id: str, db: Session = Depends(get_db)):
    equipo = equipos_service.get_equipo_or_404(db, equipo_id)
    asignaciones = (
        db.query(Asignacion)
        .filter(Asignacion.equipo_id == equipo.id)
        .order_by(Asignacion.fecha_asignacion.desc())
        .all()
    )
    return ok(serialize_asignaciones(db, asignaciones))


@router.put(
    "/{equipo_id}",
    response_model=Envelope[EquipoOut],
    dependencies=[Depends(require_staff)],
)
def update_equipo(equipo_id: str, payload: EquipoUpdate, db: Session = Depends(get_db)):
    equipo = equipos_service.get_equipo_or_404(db, equipo_id)
    equipo = equipos_service.actualizar_equipo(db, equipo, payload)
    return ok(EquipoOut.model_validate(equipo), message="Equipo actualizado correctamente")


@router.delete(
    "/{equipo_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
def delete_equipo(equipo_id: str, db: Session = Depends(get_db)):
    equipo = equipos_service.get_equipo_or_404(db, equipo_id)
    equipos_service.eliminar_equipo(db, equipo)
    return ok(message="Equipo eliminado correctamente")
