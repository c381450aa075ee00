"""
Pruebas del generador de identificadores EQ-####
"""
from inventario.modules.equipos.models import Contador, Equipo
from inventario.modules.equipos.services.identifiers import (
    format_id_equipo,
    parse_id_equipo,
    siguiente_id_equipo,
)


def test_format_and_parse():
    assert format_id_equipo(7) == "EQ-0007"
    assert format_id_equipo(12345) == "EQ-12345"
    assert parse_id_equipo("EQ-0042") == 42
    assert parse_id_equipo("EQ-42") is None
    assert parse_id_equipo("XX-0042") is None
    assert parse_id_equipo(None) is None


def test_first_two_equipos_get_sequential_ids(crear_equipo):
    primero = crear_equipo("SN-0001")
    segundo = crear_equipo("SN-0002")
    assert primero["idEquipo"] == "EQ-0001"
    assert segundo["idEquipo"] == "EQ-0002"


def test_manual_id_raises_counter(crear_equipo):
    crear_equipo("SN-0001")
    manual = crear_equipo("SN-0050", idEquipo="EQ-0050")
    siguiente = crear_equipo("SN-0051")
    assert manual["idEquipo"] == "EQ-0050"
    assert siguiente["idEquipo"] == "EQ-0051"


def test_duplicate_manual_id_is_rejected(client, admin_headers, crear_equipo):
    crear_equipo("SN-0001")
    r = client.post(
        "/api/equipos",
        json={"serial": "SN-0002", "marca": "HP", "modelo": "X", "tipoEquipo": "Monitor", "idEquipo": "EQ-0001"},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_generator_skips_ids_already_taken(db, crear_equipo):
    crear_equipo("SN-0001")
    # Un equipo con EQ-0002 insertado sin pasar por el contador
    db.add(Equipo(id_equipo="EQ-0002", serial="SN-MANUAL", marca="HP", modelo="X", tipo_equipo="Otro"))
    db.commit()

    siguiente = crear_equipo("SN-0003")
    assert siguiente["idEquipo"] == "EQ-0003"


def test_counter_is_seeded_from_existing_ids(db):
    db.add(Equipo(id_equipo="EQ-0041", serial="SN-OLD", marca="HP", modelo="X", tipo_equipo="Otro"))
    db.commit()
    assert db.get(Contador, "equipos") is None

    assert siguiente_id_equipo(db) == "EQ-0042"
    db.commit()
    assert db.get(Contador, "equipos").valor == 42


def test_ids_are_never_reused_after_delete(client, admin_headers, crear_equipo):
    crear_equipo("SN-0001")
    segundo = crear_equipo("SN-0002")
    r = client.delete(f"/api/equipos/{segundo['id']}", headers=admin_headers)
    assert r.status_code == 200

    tercero = crear_equipo("SN-0003")
    assert tercero["idEquipo"] == "EQ-0003"


def test_migrar_ids_fills_missing_ids_in_creation_order(client, db, admin_headers, crear_equipo):
    crear_equipo("SN-0001")
    db.add(Equipo(serial="SN-SIN-ID-1", marca="HP", modelo="X", tipo_equipo="Otro"))
    db.commit()
    db.add(Equipo(serial="SN-SIN-ID-2", marca="HP", modelo="X", tipo_equipo="Otro"))
    db.commit()

    r = client.post("/api/equipos/migrar-ids", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data == {"actualizados": 2, "ids": ["EQ-0002", "EQ-0003"]}

    db.expire_all()
    serial_1 = db.query(Equipo).filter(Equipo.serial == "SN-SIN-ID-1").one()
    assert serial_1.id_equipo == "EQ-0002"


def test_migrar_ids_requires_admin(client, tecnico_headers):
    r = client.post("/api/equipos/migrar-ids", headers=tecnico_headers)
    assert r.status_code == 403
