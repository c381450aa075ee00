"""
Generador de identificadores secuenciales de equipos (EQ-0001, EQ-0002, ...).

El número sale de una fila de la tabla contadores que se incrementa con un
UPDATE atómico: dos altas concurrentes quedan serializadas por el bloqueo de
fila y nunca obtienen el mismo valor. Antes de aceptar un candidato se
comprueba que ningún equipo lo tenga ya (p. ej. asignado a mano); si existe,
se toma el siguiente. Se admiten huecos y un identificador nunca se reutiliza.
"""
import logging
import re
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from inventario.modules.equipos.models import Contador, Equipo

logger = logging.getLogger(__name__)

CONTADOR_EQUIPOS = "equipos"
PREFIJO = "EQ-"
_ID_EQUIPO = re.compile(r"^EQ-(\d{4,})$")


def format_id_equipo(numero: int) -> str:
    return f"{PREFIJO}{numero:04d}"


def parse_id_equipo(value: Optional[str]) -> Optional[int]:
    """Número de un identificador EQ-####, o None si no tiene ese formato."""
    if not value:
        return None
    m = _ID_EQUIPO.match(value)
    return int(m.group(1)) if m else None


def max_id_existente(db: Session) -> int:
    """Mayor sufijo numérico entre los identificadores EQ-#### ya guardados."""
    numeros = (
        parse_id_equipo(v)
        for (v,) in db.query(Equipo.id_equipo).filter(Equipo.id_equipo.like(f"{PREFIJO}%"))
    )
    return max((n for n in numeros if n is not None), default=0)


def ensure_contador(db: Session) -> Contador:
    """Crea la fila del contador partiendo del mayor identificador existente."""
    contador = db.get(Contador, CONTADOR_EQUIPOS)
    if contador is None:
        inicial = max_id_existente(db)
        contador = Contador(nombre=CONTADOR_EQUIPOS, valor=inicial)
        db.add(contador)
        db.flush()
        logger.info("Contador de equipos inicializado en %s", inicial)
    return contador


def _incrementar(db: Session) -> int:
    db.execute(
        update(Contador)
        .where(Contador.nombre == CONTADOR_EQUIPOS)
        .values(valor=Contador.valor + 1)
        .execution_options(synchronize_session=False)
    )
    return db.execute(
        select(Contador.valor).where(Contador.nombre == CONTADOR_EQUIPOS)
    ).scalar_one()


def _existe(db: Session, id_equipo: str) -> bool:
    return db.query(Equipo.id).filter(Equipo.id_equipo == id_equipo).first() is not None


def siguiente_id_equipo(db: Session) -> str:
    """
    Siguiente identificador libre. Debe llamarse dentro de la transacción que
    guarda el equipo: el contador queda bloqueado hasta el commit.
    """
    ensure_contador(db)
    while True:
        candidato = format_id_equipo(_incrementar(db))
        if not _existe(db, candidato):
            logger.info("Identificador generado: %s", candidato)
            return candidato
        logger.warning("El identificador %s ya está en uso, se toma el siguiente", candidato)


def registrar_id_manual(db: Session, id_equipo: str) -> None:
    """Eleva el contador hasta un identificador asignado a mano para no volver a emitirlo."""
    numero = parse_id_equipo(id_equipo)
    if numero is None:
        return
    ensure_contador(db)
    db.execute(
        update(Contador)
        .where(Contador.nombre == CONTADOR_EQUIPOS, Contador.valor < numero)
        .values(valor=numero)
        .execution_options(synchronize_session=False)
    )


def asignar_ids_faltantes(db: Session) -> List[str]:
    """Asigna identificador a los equipos que no lo tienen, por orden de creación."""
    pendientes = (
        db.query(Equipo)
        .filter(Equipo.id_equipo.is_(None))
        .order_by(Equipo.created_at.asc(), Equipo.id.asc())
        .all()
    )
    asignados = []
    for equipo in pendientes:
        equipo.id_equipo = siguiente_id_equipo(db)
        asignados.append(equipo.id_equipo)
    db.commit()
    if asignados:
        logger.info("Migración de identificadores: %s equipos actualizados", len(asignados))
    return asignados
