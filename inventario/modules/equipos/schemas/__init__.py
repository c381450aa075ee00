"""Esquemas del módulo de equipos."""
from .equipo import (
    EquipoCreate,
    EquipoEstadisticas,
    EquipoListData,
    EquipoOut,
    EquipoResumen,
    EquipoSearchData,
    EquipoUpdate,
    MigracionIdsOut,
)
from .asignacion import (
    Accesorios,
    AsignacionCreate,
    AsignacionFinalizar,
    AsignacionListData,
    AsignacionOut,
)

__all__ = [
    "EquipoCreate",
    "EquipoEstadisticas",
    "EquipoListData",
    "EquipoOut",
    "EquipoResumen",
    "EquipoSearchData",
    "EquipoUpdate",
    "MigracionIdsOut",
    "Accesorios",
    "AsignacionCreate",
    "AsignacionFinalizar",
    "AsignacionListData",
    "AsignacionOut",
]
