"""Esquemas de usuarios y autenticación."""

import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from inventario.core.responses import CamelModel

Cargo = Literal["Empleado", "Supervisor", "Gerente", "Administrador"]
Rol = Literal["user", "tecnico", "admin"]

_ID_USUARIO = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_password(value: str) -> str:
    """Mínimo 8 caracteres con mayúscula, minúscula y número."""
    if len(value) < 8:
        raise ValueError("La contraseña debe tener al menos 8 caracteres")
    if not re.search(r"[A-Z]", value) or not re.search(r"[a-z]", value) or not re.search(r"\d", value):
        raise ValueError("La contraseña debe contener al menos una mayúscula, una minúscula y un número")
    return value


class UsuarioBase(CamelModel):
    id_usuario: str = Field(..., min_length=3, max_length=20)
    nombre: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    cargo: Cargo = "Empleado"
    sede: Optional[str] = Field(None, max_length=100)
    direccion: Optional[str] = Field(None, max_length=100)
    gerencia: Optional[str] = Field(None, max_length=100)

    @field_validator("id_usuario")
    @classmethod
    def _id_usuario(cls, v: str) -> str:
        v = v.strip()
        if not _ID_USUARIO.match(v):
            raise ValueError("El idUsuario solo admite letras, números, punto, guion y guion bajo")
        return v


class RegistroRequest(UsuarioBase):
    """Registro público: el rol siempre es 'user'."""

    password: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return validate_password(v)


class UsuarioCreate(RegistroRequest):
    """Alta por un administrador."""

    rol: Rol = "user"
    activo: bool = True


class UsuarioUpdate(CamelModel):
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    cargo: Optional[Cargo] = None
    sede: Optional[str] = Field(None, max_length=100)
    direccion: Optional[str] = Field(None, max_length=100)
    gerencia: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = None
    rol: Optional[Rol] = None
    activo: Optional[bool] = None

    @field_validator("password")
    @classmethod
    def _password(cls, v: Optional[str]) -> Optional[str]:
        return validate_password(v) if v is not None else v


class UsuarioOut(CamelModel):
    id: UUID
    id_usuario: str
    nombre: str
    email: str
    cargo: str
    sede: Optional[str] = None
    direccion: Optional[str] = None
    gerencia: Optional[str] = None
    rol: str
    activo: bool
    ultimo_acceso: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UsuarioResumen(CamelModel):
    """Datos mínimos del usuario en asignaciones e historiales."""

    id: UUID
    id_usuario: str
    nombre: str
    email: str
    cargo: Optional[str] = None
    sede: Optional[str] = None


class UsuarioListData(CamelModel):
    usuarios: List[Dict[str, Any]]
    pagination: Dict[str, Any]


class UsuarioStats(CamelModel):
    total: int
    activos: int
    inactivos: int
    por_rol: Dict[str, int]
    porcentaje_activos: float


class LoginRequest(CamelModel):
    """email es str: el login no debe rechazar dominios internos que EmailStr no admite."""

    email: str
    password: str


class SesionOut(CamelModel):
    token: str
    user: UsuarioOut


class VerifyTokenOut(CamelModel):
    valid: bool
    user: UsuarioOut


class ChangePassword(CamelModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, v: str) -> str:
        return validate_password(v)
