"""
Sobre de respuesta común y modelo base de los esquemas
"""
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import settings

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base de los esquemas: snake_case en Python, camelCase en JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(BaseModel, Generic[T]):
    """{success, message, data?, timestamp}"""

    success: bool = True
    message: Union[str, List[str]] = "OK"
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=utcnow)


def ok(data: Any = None, message: str = "OK") -> Envelope:
    return Envelope(success=True, message=message, data=data)


def error_body(message: Union[str, List[str]], stack: Optional[str] = None) -> Dict[str, Any]:
    """Cuerpo de error; la traza solo sale fuera de producción."""
    body: Dict[str, Any] = {
        "success": False,
        "message": message,
        "timestamp": utcnow().isoformat(),
    }
    if stack and not settings.is_production:
        body["stack"] = stack
    return body
