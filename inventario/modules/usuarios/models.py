"""
Modelo de usuario del inventario
"""
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, Uuid

from inventario.core.database import Base
from inventario.core.responses import utcnow

ROLES = ("user", "tecnico", "admin")


class Usuario(Base):
    """Usuario del sistema (empleado que recibe equipos y/o gestiona el inventario)"""

    __tablename__ = "usuarios"

    id = Column(Uuid, primary_key=True, default=uuid4)
    id_usuario = Column(String(20), unique=True, nullable=False, index=True)
    nombre = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    cargo = Column(String(30), nullable=False, default="Empleado")
    sede = Column(String(100), nullable=True)
    direccion = Column(String(100), nullable=True)
    gerencia = Column(String(100), nullable=True)
    rol = Column(String(20), nullable=False, default="user")
    activo = Column(Boolean, nullable=False, default=True)
    ultimo_acceso = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def has_role(self, *roles: str) -> bool:
        return self.rol in roles
