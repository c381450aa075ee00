"""
Pruebas básicas de integración: health, sobre de respuesta y manejo de errores
"""
from fastapi.testclient import TestClient

from inventario.core.config import settings
from inventario.main import app


def test_health_check(client):
    """Health check sin autenticación"""
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "ok"
    assert body["data"]["environment"] == "test"
    assert "timestamp" in body


def test_unknown_route_returns_envelope(client):
    response = client.get("/api/no-existe")
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Ruta no encontrada: /api/no-existe"


def test_equipos_requires_auth(client):
    response = client.get("/api/equipos")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_invalid_token_is_401(client):
    response = client.get("/api/equipos", headers={"Authorization": "Bearer no-es-un-jwt"})
    assert response.status_code == 401


def test_validation_error_is_400_with_messages(client, admin_headers):
    response = client.post("/api/equipos", json={"marca": "Dell"}, headers=admin_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert isinstance(body["message"], list)
    assert any(m.startswith("serial") for m in body["message"])


def test_payload_too_large_is_413(client, admin_headers, monkeypatch):
    monkeypatch.setattr(settings, "max_body_size", 100)
    response = client.post(
        "/api/equipos",
        content=b"{" + b" " * 200 + b"}",
        headers={**admin_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 413
    assert response.json()["success"] is False


def test_unhandled_error_is_500_without_details_in_production(admin_headers, monkeypatch):
    from inventario.modules.equipos.services import equipos as equipos_service

    def _boom(db):
        raise RuntimeError("fallo interno del almacén")

    monkeypatch.setattr(equipos_service, "estadisticas", _boom)
    monkeypatch.setattr(settings, "environment", "production")
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/equipos/estadisticas", headers=admin_headers)
    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "Error interno del servidor"
    assert "stack" not in body
    assert "almacén" not in response.text


def test_unhandled_error_includes_stack_outside_production(admin_headers, monkeypatch):
    from inventario.modules.equipos.services import equipos as equipos_service

    def _boom(db):
        raise RuntimeError("fallo interno")

    monkeypatch.setattr(equipos_service, "estadisticas", _boom)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/equipos/estadisticas", headers=admin_headers)
    assert response.status_code == 500
    assert "RuntimeError" in response.json()["stack"]


def test_integrity_error_is_generic_400(admin_headers, monkeypatch):
    from sqlalchemy.exc import IntegrityError

    from inventario.modules.equipos.services import equipos as equipos_service

    def _duplicado(db):
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: equipos.serial"))

    monkeypatch.setattr(equipos_service, "estadisticas", _duplicado)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/equipos/estadisticas", headers=admin_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "La operación viola una restricción de integridad"
    assert "equipos.serial" not in response.text
