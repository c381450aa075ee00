"""
Fixtures comunes: SQLite en memoria, esquema limpio por test y usuarios de cada rol
"""
import os

# La configuración se lee al importar la app: el entorno va antes que cualquier import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "clave-de-pruebas-con-al-menos-32-caracteres"
os.environ["ENVIRONMENT"] = "test"
os.environ["SEED_ADMIN_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from inventario.core.auth import create_access_token, get_password_hash
from inventario.core.database import Base, SessionLocal, engine
from inventario.main import app
from inventario.modules.usuarios.models import Usuario

PASSWORD = "Secreta123"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(db, id_usuario, rol="user", activo=True, email=None, nombre=None):
    user = Usuario(
        id_usuario=id_usuario,
        nombre=nombre or id_usuario.capitalize(),
        email=email or f"{id_usuario}@empresa.com",
        password_hash=get_password_hash(PASSWORD),
        cargo="Empleado",
        rol=rol,
        activo=activo,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.rol)}"}


@pytest.fixture
def admin(db):
    return make_user(db, "admin", rol="admin")


@pytest.fixture
def tecnico(db):
    return make_user(db, "tecnico", rol="tecnico")


@pytest.fixture
def empleado(db):
    return make_user(db, "empleado", rol="user", nombre="Ana Pérez")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def tecnico_headers(tecnico):
    return auth_headers(tecnico)


@pytest.fixture
def empleado_headers(empleado):
    return auth_headers(empleado)


def equipo_payload(serial, **extra):
    payload = {
        "serial": serial,
        "marca": "Dell",
        "modelo": "Latitude 5420",
        "tipoEquipo": "Laptop",
    }
    payload.update(extra)
    return payload


@pytest.fixture
def crear_equipo(client, admin_headers):
    """Crea un equipo por la API y devuelve su representación."""

    def _crear(serial, **extra):
        r = client.post("/api/equipos", json=equipo_payload(serial, **extra), headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()["data"]

    return _crear
