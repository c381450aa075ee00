"""Esquemas de asignaciones."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from inventario.core.responses import CamelModel
from inventario.modules.equipos.schemas.equipo import EquipoResumen
from inventario.modules.usuarios.schemas import UsuarioResumen


class Accesorios(CamelModel):
    """Checklist de accesorios entregados con el equipo."""

    cargador_laptop: bool = False
    docking_station: bool = False
    cargador_docking: bool = False
    monitor: bool = False
    maleta: bool = False
    guaya_adaptador: bool = False


class AsignacionCreate(CamelModel):
    # UUID del usuario
    usuario: str
    # UUID del equipo o su idEquipo (EQ-####)
    equipo: str
    fecha_asignacion: Optional[datetime] = None
    accesorios: Accesorios = Field(default_factory=Accesorios)
    comentario: Optional[str] = Field(None, max_length=500)


class AsignacionFinalizar(CamelModel):
    motivo_devolucion: Optional[str] = Field(None, max_length=500)


class AsignacionOut(CamelModel):
    id: UUID
    usuario_id: UUID
    equipo_id: UUID
    accesorios: Dict[str, Any] = {}
    comentario: Optional[str] = None
    fecha_asignacion: datetime
    fecha_devolucion: Optional[datetime] = None
    motivo_devolucion: Optional[str] = None
    activo: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    usuario: Optional[UsuarioResumen] = None
    equipo: Optional[EquipoResumen] = None


class AsignacionListData(CamelModel):
    asignaciones: List[AsignacionOut]
    pagination: Dict[str, Any]
