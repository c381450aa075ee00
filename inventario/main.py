"""
Punto de entrada del backend de inventario TI
"""
import logging
import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from inventario import __version__
from inventario.core import auth_routes
from inventario.core.config import settings
from inventario.core.database import SessionLocal, engine, init_db
from inventario.core.errors import limit_body_size, register_exception_handlers
from inventario.core.responses import Envelope, ok
from inventario.modules.equipos import api as equipos_api
from inventario.modules.equipos.services.identifiers import ensure_contador
from inventario.modules.usuarios import api as usuarios_api
from inventario.modules.usuarios.services.usuarios import seed_admin

# Configuración de logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

_started_at = time.monotonic()

app = FastAPI(
    title=settings.app_name,
    description="API de inventario de equipos TI: usuarios, equipos y asignaciones",
    version=__version__,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(limit_body_size)

if settings.environment == "development":

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response


register_exception_handlers(app)

# Routers de los módulos
app.include_router(auth_routes.router)
app.include_router(usuarios_api.router)
app.include_router(equipos_api.router)


@app.get("/health", response_model=Envelope[dict])
async def health_check():
    """Health check (sin autenticación)"""
    return ok(
        {
            "status": "ok",
            "environment": settings.environment,
            "uptime": round(time.monotonic() - _started_at, 1),
            "version": __version__,
        },
        message="Servidor funcionando correctamente",
    )


@app.on_event("startup")
def on_startup():
    """Inicialización: esquema, conexión, contador de identificadores y admin inicial"""
    logger.info("Iniciando %s (%s)...", settings.app_name, settings.environment)
    init_db()
    db = SessionLocal()
    try:
        ensure_contador(db)
        db.commit()
        seed_admin(db)
    finally:
        db.close()
    logger.info("%s listo", settings.app_name)


@app.on_event("shutdown")
def on_shutdown():
    logger.info("Deteniendo %s...", settings.app_name)
    engine.dispose()


def run() -> None:
    """uvicorn atiende SIGINT/SIGTERM y cierra el servidor de forma ordenada."""
    uvicorn.run(
        "inventario.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
