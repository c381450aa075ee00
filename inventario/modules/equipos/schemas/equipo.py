"""Esquemas de equipos."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import AfterValidator, BeforeValidator, Field

from inventario.core.responses import CamelModel

TipoEquipo = Literal[
    "Laptop",
    "Desktop",
    "Monitor",
    "Impresora",
    "Telefono",
    "Tablet",
    "Servidor",
    "Router",
    "Switch",
    "Otro",
]
EstadoEquipo = Literal["Bodega", "Asignado", "Reposo", "Alistamiento", "Mantenimiento", "Baja"]
EstadoGarantia = Literal["Vigente", "Vencida", "No aplica"]

ID_EQUIPO_PATTERN = r"^EQ-\d{4,}$"


def _normalize_serial(v: Any) -> Any:
    return v.strip().upper() if isinstance(v, str) else v


def _not_future(v: Optional[date]) -> Optional[date]:
    if v is not None and v > date.today():
        raise ValueError("La fecha de adquisición no puede ser futura")
    return v


# El serial se guarda sin espacios y en mayúsculas
Serial = Annotated[str, BeforeValidator(_normalize_serial), Field(min_length=3, max_length=100)]
FechaAdquisicion = Annotated[date, AfterValidator(_not_future)]


class Garantia(CamelModel):
    fecha_vencimiento: Optional[date] = None
    estado: EstadoGarantia = "No aplica"


class Especificaciones(CamelModel):
    procesador: Optional[str] = None
    memoria: Optional[str] = None
    almacenamiento: Optional[str] = None
    sistema_operativo: Optional[str] = None
    otros: Optional[str] = None


class EquipoBase(CamelModel):
    serial: Serial
    marca: str = Field(..., min_length=1, max_length=50)
    modelo: str = Field(..., min_length=1, max_length=100)
    tipo_equipo: TipoEquipo
    estado: EstadoEquipo = "Bodega"
    ubicacion: str = Field("Bodega Principal", max_length=100)
    observaciones: Optional[str] = Field(None, max_length=500)
    fecha_adquisicion: Optional[FechaAdquisicion] = None
    valor_compra: Optional[Decimal] = Field(None, ge=0)
    proveedor: Optional[str] = Field(None, max_length=100)
    garantia: Optional[Garantia] = None
    especificaciones: Optional[Especificaciones] = None


class EquipoCreate(EquipoBase):
    # Si no se envía, se genera el siguiente EQ-####
    id_equipo: Optional[str] = Field(None, pattern=ID_EQUIPO_PATTERN)


class EquipoUpdate(CamelModel):
    # Solo para rechazar un cambio: el identificador es inmutable
    id_equipo: Optional[str] = None
    serial: Optional[Serial] = None
    marca: Optional[str] = Field(None, min_length=1, max_length=50)
    modelo: Optional[str] = Field(None, min_length=1, max_length=100)
    tipo_equipo: Optional[TipoEquipo] = None
    estado: Optional[EstadoEquipo] = None
    ubicacion: Optional[str] = Field(None, max_length=100)
    observaciones: Optional[str] = Field(None, max_length=500)
    fecha_adquisicion: Optional[FechaAdquisicion] = None
    valor_compra: Optional[Decimal] = Field(None, ge=0)
    proveedor: Optional[str] = Field(None, max_length=100)
    garantia: Optional[Garantia] = None
    especificaciones: Optional[Especificaciones] = None


class EquipoOut(CamelModel):
    id: UUID
    id_equipo: Optional[str] = None
    serial: str
    marca: str
    modelo: str
    tipo_equipo: str
    estado: str
    ubicacion: Optional[str] = None
    observaciones: Optional[str] = None
    fecha_adquisicion: Optional[date] = None
    valor_compra: Optional[float] = None
    proveedor: Optional[str] = None
    garantia: Garantia
    especificaciones: Optional[Dict[str, Any]] = None
    ultima_asignacion: Optional[UUID] = None
    edad_en_dias: Optional[int] = None
    estado_garantia: str
    disponible: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EquipoResumen(CamelModel):
    """Datos mínimos del equipo en asignaciones y en /auth/me."""

    id: UUID
    id_equipo: Optional[str] = None
    serial: str
    marca: str
    modelo: str
    tipo_equipo: str
    estado: str


class EquipoListData(CamelModel):
    equipos: List[Dict[str, Any]]
    pagination: Dict[str, Any]


class EquipoSearchData(CamelModel):
    equipos: List[EquipoOut]
    total: int


class EquipoEstadisticas(CamelModel):
    total: int
    por_estado: Dict[str, int]
    por_tipo: Dict[str, int]
    disponibles: int


class MigracionIdsOut(CamelModel):
    actualizados: int
    ids: List[str]
