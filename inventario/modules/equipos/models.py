"""
Modelos del inventario: equipos, asignaciones y contadores de identificadores
"""
from datetime import date
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship

from inventario.core.database import Base
from inventario.core.responses import utcnow
from inventario.modules.usuarios.models import Usuario

TIPOS_EQUIPO = (
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
)
ESTADOS_EQUIPO = ("Bodega", "Asignado", "Reposo", "Alistamiento", "Mantenimiento", "Baja")
# Estados desde los que un equipo puede entregarse
ESTADOS_DISPONIBLES = ("Bodega", "Reposo", "Alistamiento")


class Equipo(Base):
    """Equipo de TI inventariado"""

    __tablename__ = "equipos"

    id = Column(Uuid, primary_key=True, default=uuid4)
    # EQ-####, se asigna una sola vez al crear y no cambia
    id_equipo = Column(String(20), unique=True, nullable=True, index=True)
    serial = Column(String(100), unique=True, nullable=False, index=True)
    marca = Column(String(50), nullable=False)
    modelo = Column(String(100), nullable=False)
    tipo_equipo = Column(String(20), nullable=False, index=True)
    estado = Column(String(20), nullable=False, default="Bodega", index=True)
    ubicacion = Column(String(100), nullable=False, default="Bodega Principal")
    observaciones = Column(Text, nullable=True)
    fecha_adquisicion = Column(Date, nullable=True)
    valor_compra = Column(Numeric(14, 2), nullable=True)
    proveedor = Column(String(100), nullable=True)
    garantia_vencimiento = Column(Date, nullable=True)
    garantia_estado = Column(String(20), nullable=False, default="No aplica")
    especificaciones = Column(JSON, nullable=True)
    # Última asignación (sin FK para no crear un ciclo equipos <-> asignaciones)
    ultima_asignacion = Column("ultima_asignacion_id", Uuid, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Bloqueo optimista: un UPDATE con versión obsoleta lanza StaleDataError
    __mapper_args__ = {"version_id_col": version}

    @property
    def garantia(self) -> dict:
        return {
            "fecha_vencimiento": self.garantia_vencimiento,
            "estado": self.garantia_estado or "No aplica",
        }

    @property
    def edad_en_dias(self) -> Optional[int]:
        if not self.fecha_adquisicion:
            return None
        return (date.today() - self.fecha_adquisicion).days

    @property
    def estado_garantia(self) -> str:
        if not self.garantia_vencimiento:
            return "Sin información"
        return "Vigente" if self.garantia_vencimiento >= date.today() else "Vencida"

    @property
    def disponible(self) -> bool:
        return self.estado in ESTADOS_DISPONIBLES


class Asignacion(Base):
    """Entrega de un equipo a un usuario; activo=False cuando se devuelve"""

    __tablename__ = "asignaciones"

    id = Column(Uuid, primary_key=True, default=uuid4)
    usuario_id = Column(Uuid, ForeignKey("usuarios.id"), nullable=False, index=True)
    equipo_id = Column(Uuid, ForeignKey("equipos.id"), nullable=False, index=True)
    accesorios = Column(JSON, nullable=False, default=dict)
    comentario = Column(Text, nullable=True)
    fecha_asignacion = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    fecha_devolucion = Column(DateTime(timezone=True), nullable=True)
    motivo_devolucion = Column(Text, nullable=True)
    activo = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    equipo = relationship(Equipo)
    usuario = relationship(Usuario)

    __table_args__ = (
        # Como máximo una asignación activa por equipo
        Index(
            "uq_asignacion_activa_equipo",
            "equipo_id",
            unique=True,
            postgresql_where=text("activo = true"),
            sqlite_where=text("activo = 1"),
        ),
    )


class Contador(Base):
    """Contador atómico para identificadores secuenciales (nombre='equipos')"""

    __tablename__ = "contadores"

    nombre = Column(String(50), primary_key=True)
    valor = Column(Integer, nullable=False, default=0)
