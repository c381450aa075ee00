"""
Base de datos única del inventario
"""
import logging
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import settings

logger = logging.getLogger(__name__)

# Clase base de todos los modelos
Base = declarative_base()


def _engine_options(url: str) -> Dict[str, Any]:
    """Opciones del pool según el motor: PostgreSQL en producción, SQLite en tests."""
    if url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # Base en memoria: una sola conexión compartida por todos los hilos
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle,
        "connect_args": {"connect_timeout": settings.db_connect_timeout},
    }


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency que entrega una sesión de BD por petición.

    Usage:
        @router.get("/")
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Crea las tablas y comprueba la conexión. Un fallo aquí aborta el arranque."""
    # Registrar todos los modelos en Base.metadata
    from inventario.modules.usuarios import models as _usuarios  # noqa: F401
    from inventario.modules.equipos import models as _equipos  # noqa: F401

    Base.metadata.create_all(bind=engine)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("Conexión a la base de datos verificada")
