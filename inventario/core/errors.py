"""
Manejo de errores: traduce excepciones al sobre de respuesta común
"""
import logging
import traceback
from typing import List
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .responses import error_body

logger = logging.getLogger(__name__)


def parse_uuid(value: str, message: str = "ID no válido") -> UUID:
    """UUID del path; un formato incorrecto es 400, distinto de un documento inexistente (404)."""
    try:
        return UUID(str(value))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _validation_messages(exc: RequestValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        msg = str(err.get("msg", "Valor no válido"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return messages or ["Datos de entrada no válidos"]


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Ruta no encontrada: {request.url.path}"
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED and exc.detail == "Method Not Allowed":
        message = f"Método {request.method} no permitido en {request.url.path}"
    else:
        message = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(_validation_messages(exc)),
    )


async def _integrity_error_handler(request: Request, exc: IntegrityError):
    # Los servicios comprueban unicidad antes de escribir; aquí solo llegan carreras
    db_error = getattr(exc, "orig", exc)
    logger.warning("Violación de integridad en %s: %s", request.url.path, db_error)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("La operación viola una restricción de integridad"),
    )


async def _stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning("Modificación concurrente en %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body("El registro fue modificado por otra operación. Inténtelo de nuevo"),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Error no controlado en %s %s", request.method, request.url.path, exc_info=exc
    )
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Error interno del servidor", stack=stack),
    )


async def limit_body_size(request: Request, call_next):
    """413 si Content-Length supera el máximo configurado."""
    length = request.headers.get("content-length")
    if length and length.isdigit() and int(length) > settings.max_body_size:
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content=error_body("El cuerpo de la petición es demasiado grande"),
        )
    return await call_next(request)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    app.add_exception_handler(StaleDataError, _stale_data_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
