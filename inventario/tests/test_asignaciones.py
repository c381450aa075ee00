"""
Pruebas de /api/asignaciones y de su efecto sobre el estado de los equipos
"""
from conftest import make_user

from inventario.modules.equipos.models import Asignacion


def _asignar(client, headers, usuario_id, equipo_ref, **extra):
    payload = {"usuario": str(usuario_id), "equipo": equipo_ref, **extra}
    return client.post("/api/asignaciones", json=payload, headers=headers)


def test_create_asignacion_marks_equipo_asignado(client, tecnico_headers, empleado, crear_equipo):
    eq = crear_equipo("SN-ASG")
    r = _asignar(
        client,
        tecnico_headers,
        empleado.id,
        eq["id"],
        accesorios={"cargadorLaptop": True, "maleta": True},
        comentario="Entrega inicial",
    )
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["activo"] is True
    assert data["usuario"]["nombre"] == "Ana Pérez"
    assert data["equipo"]["idEquipo"] == "EQ-0001"
    assert data["accesorios"]["cargadorLaptop"] is True
    assert data["accesorios"]["monitor"] is False

    equipo = client.get(f"/api/equipos/{eq['id']}", headers=tecnico_headers).json()["data"]
    assert equipo["estado"] == "Asignado"
    assert equipo["ultimaAsignacion"] == data["id"]
    assert equipo["disponible"] is False


def test_equipo_can_be_referenced_by_id_equipo(client, admin_headers, empleado, crear_equipo):
    crear_equipo("SN-REF")
    r = _asignar(client, admin_headers, empleado.id, "EQ-0001")
    assert r.status_code == 201


def test_duplicate_active_asignacion_is_rejected(client, db, admin_headers, empleado, crear_equipo):
    otro = make_user(db, "otro")
    eq = crear_equipo("SN-DOBLE")
    assert _asignar(client, admin_headers, empleado.id, eq["id"]).status_code == 201

    r = _asignar(client, admin_headers, otro.id, eq["id"])
    assert r.status_code == 400
    assert r.json()["message"] == "Este equipo ya está asignado a otro usuario"
    assert db.query(Asignacion).count() == 1


def test_parallel_asignacion_is_caught_by_unique_index(client, db, admin_headers, empleado, crear_equipo, monkeypatch):
    from inventario.modules.equipos.services import asignaciones as asignaciones_service

    otro = make_user(db, "otro")
    eq = crear_equipo("SN-CARRERA")
    assert _asignar(client, admin_headers, empleado.id, eq["id"]).status_code == 201

    # La comprobación previa no ve la asignación creada en paralelo
    monkeypatch.setattr(asignaciones_service, "asignacion_activa", lambda db, equipo: None)
    r = _asignar(client, admin_headers, otro.id, eq["id"])
    assert r.status_code == 400
    assert r.json()["message"] == "Este equipo ya está asignado a otro usuario"
    assert db.query(Asignacion).count() == 1


def test_missing_user_or_equipo_is_404(client, admin_headers, empleado, crear_equipo):
    eq = crear_equipo("SN-404")
    r = _asignar(client, admin_headers, "00000000-0000-0000-0000-000000000000", eq["id"])
    assert r.status_code == 404
    assert r.json()["message"] == "El usuario no existe"

    r = _asignar(client, admin_headers, empleado.id, "EQ-0404")
    assert r.status_code == 404
    assert r.json()["message"] == "El equipo no existe"


def test_inactive_user_cannot_receive_equipo(client, db, admin_headers, crear_equipo):
    inactivo = make_user(db, "inactivo", activo=False)
    eq = crear_equipo("SN-INA")
    assert _asignar(client, admin_headers, inactivo.id, eq["id"]).status_code == 400


def test_finalize_moves_equipo_to_reposo(client, admin_headers, empleado, crear_equipo):
    eq = crear_equipo("SN-FIN")
    asignacion = _asignar(client, admin_headers, empleado.id, eq["id"]).json()["data"]

    r = client.put(
        f"/api/asignaciones/{asignacion['id']}",
        json={"motivoDevolucion": "Renovación de equipo"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["activo"] is False
    assert data["fechaDevolucion"] is not None
    assert data["motivoDevolucion"] == "Renovación de equipo"

    equipo = client.get(f"/api/equipos/{eq['id']}", headers=admin_headers).json()["data"]
    assert equipo["estado"] == "Reposo"

    activas = client.get("/api/asignaciones?activo=true", headers=admin_headers).json()["data"]
    assert activas["asignaciones"] == []
    assert activas["pagination"]["totalAsignaciones"] == 0

    # Ya finalizada
    again = client.put(f"/api/asignaciones/{asignacion['id']}", json={}, headers=admin_headers)
    assert again.status_code == 400


def test_equipo_can_be_reassigned_after_return(client, db, admin_headers, empleado, crear_equipo):
    otro = make_user(db, "otro")
    eq = crear_equipo("SN-RE")
    primera = _asignar(client, admin_headers, empleado.id, eq["id"]).json()["data"]
    client.put(f"/api/asignaciones/{primera['id']}", json={}, headers=admin_headers)

    r = _asignar(client, admin_headers, otro.id, eq["id"])
    assert r.status_code == 201

    historial = client.get(f"/api/equipos/{eq['id']}/historial", headers=admin_headers).json()["data"]
    assert len(historial) == 2
    assert historial[0]["usuario"]["idUsuario"] == "otro"
    assert historial[0]["activo"] is True


def test_delete_equipo_blocked_with_active_asignacion(client, admin_headers, empleado, crear_equipo):
    eq = crear_equipo("SN-BLK")
    asignacion = _asignar(client, admin_headers, empleado.id, eq["id"]).json()["data"]

    r = client.delete(f"/api/equipos/{eq['id']}", headers=admin_headers)
    assert r.status_code == 400

    client.put(f"/api/asignaciones/{asignacion['id']}", json={}, headers=admin_headers)
    r = client.delete(f"/api/equipos/{eq['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert client.get(f"/api/equipos/{eq['id']}", headers=admin_headers).status_code == 404


def test_estado_cannot_leave_asignado_while_active(client, admin_headers, empleado, crear_equipo):
    eq = crear_equipo("SN-EST")
    _asignar(client, admin_headers, empleado.id, eq["id"])
    r = client.put(f"/api/equipos/{eq['id']}", json={"estado": "Bodega"}, headers=admin_headers)
    assert r.status_code == 400


def test_list_and_history_endpoints(client, admin_headers, empleado, crear_equipo):
    uno = crear_equipo("SN-L1")
    dos = crear_equipo("SN-L2")
    _asignar(client, admin_headers, empleado.id, uno["id"])
    _asignar(client, admin_headers, empleado.id, dos["id"])

    r = client.get("/api/asignaciones?limite=1", headers=admin_headers)
    data = r.json()["data"]
    assert len(data["asignaciones"]) == 1
    assert data["pagination"]["totalPaginas"] == 2

    r = client.get(f"/api/asignaciones?usuario={empleado.id}", headers=admin_headers)
    assert r.json()["data"]["pagination"]["total"] == 2

    por_usuario = client.get(f"/api/asignaciones/usuario/{empleado.id}", headers=admin_headers).json()["data"]
    assert {a["equipo"]["serial"] for a in por_usuario} == {"SN-L1", "SN-L2"}

    por_equipo = client.get("/api/asignaciones/equipo/EQ-0002", headers=admin_headers).json()["data"]
    assert [a["equipo"]["serial"] for a in por_equipo] == ["SN-L2"]

    una = client.get(f"/api/asignaciones/{por_equipo[0]['id']}", headers=admin_headers)
    assert una.status_code == 200
    assert client.get("/api/asignaciones/xyz", headers=admin_headers).status_code == 400


def test_asignaciones_are_staff_only(client, empleado_headers):
    assert client.get("/api/asignaciones", headers=empleado_headers).status_code == 403
