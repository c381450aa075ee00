"""
Pruebas de autenticación: login, registro, cookie de sesión y control de roles
"""
from datetime import timedelta

from conftest import PASSWORD, auth_headers, make_user

from inventario.core.auth import create_access_token, decode_token
from inventario.core.config import settings


def test_login_returns_token_and_sets_cookie(client, empleado):
    r = client.post("/api/auth/login", json={"email": "EMPLEADO@empresa.com", "password": PASSWORD})
    assert r.status_code == 200
    data = r.json()["data"]
    payload = decode_token(data["token"])
    assert payload["sub"] == str(empleado.id)
    assert payload["rol"] == "user"
    assert data["user"]["email"] == "empleado@empresa.com"
    assert "passwordHash" not in data["user"]
    assert data["user"]["ultimoAcceso"] is not None
    assert settings.cookie_name in r.cookies


def test_login_wrong_password_is_401_without_token(client, empleado):
    r = client.post("/api/auth/login", json={"email": "empleado@empresa.com", "password": "Incorrecta1"})
    assert r.status_code == 401
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Email o contraseña incorrectos"
    assert "data" not in body
    assert settings.cookie_name not in r.cookies


def test_login_inactive_user_is_401(client, db):
    make_user(db, "baja", activo=False)
    r = client.post("/api/auth/login", json={"email": "baja@empresa.com", "password": PASSWORD})
    assert r.status_code == 401


def test_register_always_creates_user_role(client):
    r = client.post(
        "/api/auth/register",
        json={
            "idUsuario": "jlopez",
            "nombre": "juan  lópez",
            "email": "Juan.Lopez@Empresa.com",
            "password": "Segura123",
            "rol": "admin",
            "sede": "Bogotá",
        },
    )
    assert r.status_code == 201
    user = r.json()["data"]["user"]
    assert user["rol"] == "user"
    assert user["nombre"] == "Juan López"
    assert user["email"] == "juan.lopez@empresa.com"


def test_register_rejects_weak_password_and_duplicates(client, empleado):
    base = {"idUsuario": "nuevo", "nombre": "Nuevo Usuario", "email": "nuevo@empresa.com"}
    r = client.post("/api/auth/register", json={**base, "password": "debil"})
    assert r.status_code == 400
    assert isinstance(r.json()["message"], list)

    r = client.post("/api/auth/register", json={**base, "password": "sinnumeros"})
    assert r.status_code == 400

    r = client.post(
        "/api/auth/register",
        json={**base, "email": "empleado@empresa.com", "password": "Segura123"},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "El email ya está registrado"


def test_cookie_session_is_accepted(client, empleado):
    client.post("/api/auth/login", json={"email": "empleado@empresa.com", "password": PASSWORD})
    r = client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["data"]["idUsuario"] == "empleado"

    client.post("/api/auth/logout")
    client.cookies.clear()
    assert client.get("/api/auth/me").status_code == 401


def test_me_includes_assigned_equipment(client, admin_headers, empleado, empleado_headers, crear_equipo):
    eq = crear_equipo("SN-ME")
    client.post(
        "/api/asignaciones",
        json={"usuario": str(empleado.id), "equipo": eq["id"]},
        headers=admin_headers,
    )
    me = client.get("/api/auth/me", headers=empleado_headers).json()["data"]
    assert [e["serial"] for e in me["equiposAsignados"]] == ["SN-ME"]
    assert me["equiposAsignados"][0]["fechaAsignacion"] is not None


def test_verify_token(client, empleado_headers):
    r = client.post("/api/auth/verify-token", headers=empleado_headers)
    assert r.status_code == 200
    assert r.json()["data"]["valid"] is True
    assert client.post("/api/auth/verify-token").status_code == 401


def test_expired_token_is_401(client, empleado):
    token = create_access_token(empleado.id, empleado.email, empleado.rol, expires_delta=timedelta(seconds=-5))
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_token_signed_with_other_secret_is_401(client, empleado, monkeypatch):
    monkeypatch.setattr(settings, "secret_key", "otra-clave-distinta-de-al-menos-32-caracteres")
    token = create_access_token(empleado.id, empleado.email, empleado.rol)
    monkeypatch.undo()
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_deactivated_user_token_is_401(client, db, empleado):
    headers = auth_headers(empleado)
    empleado.activo = False
    db.commit()
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_deleted_user_token_is_401(client, db, empleado):
    headers = auth_headers(empleado)
    db.delete(empleado)
    db.commit()
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_change_password(client, empleado_headers):
    r = client.put(
        "/api/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "NuevaClave9"},
        headers=empleado_headers,
    )
    assert r.status_code == 200
    r = client.post("/api/auth/login", json={"email": "empleado@empresa.com", "password": "NuevaClave9"})
    assert r.status_code == 200

    r = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "mala", "newPassword": "OtraClave9"},
        headers=empleado_headers,
    )
    assert r.status_code == 400
