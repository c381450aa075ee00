"""
Cliente Python de la API de inventario.

La sesión (URL base y token) es un objeto explícito que se pasa en cada
llamada; no hay token global compartido entre usuarios del cliente.

    http = httpx.Client(timeout=10)
    client = InventarioClient(http)
    session = client.login(ApiSession("http://localhost:5000/api"), "admin@inventario.com", "Admin12345")
    equipos = client.list_equipment(session, estado="Bodega", limite=20)
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Union

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Respuesta de error de la API ({success: false, message})."""

    def __init__(self, status_code: int, message: Union[str, List[str]]):
        self.status_code = status_code
        self.message = message
        text = "; ".join(message) if isinstance(message, list) else message
        super().__init__(f"{status_code}: {text}")


@dataclass(frozen=True)
class ApiSession:
    base_url: str
    token: Optional[str] = None

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}


class InventarioClient:
    def __init__(self, http: httpx.Client):
        self.http = http

    def _request(self, session: ApiSession, method: str, path: str, **kwargs) -> Any:
        url = f"{session.base_url.rstrip('/')}{path}"
        response = self.http.request(method, url, headers=session.headers(), **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        if response.is_error:
            logger.warning("%s %s -> %s", method, path, response.status_code)
            raise ApiError(response.status_code, body.get("message", response.reason_phrase))
        return body.get("data")

    def login(self, session: ApiSession, email: str, password: str) -> ApiSession:
        """Devuelve una sesión nueva con el token; la original no se modifica."""
        data = self._request(session, "POST", "/auth/login", json={"email": email, "password": password})
        return replace(session, token=data["token"])

    def logout(self, session: ApiSession) -> ApiSession:
        self._request(session, "POST", "/auth/logout")
        return replace(session, token=None)

    def me(self, session: ApiSession) -> Dict[str, Any]:
        return self._request(session, "GET", "/auth/me")

    def list_equipment(self, session: ApiSession, **params: Any) -> Dict[str, Any]:
        return self._request(session, "GET", "/equipos", params=params)

    def get_equipment(self, session: ApiSession, ref: str) -> Dict[str, Any]:
        return self._request(session, "GET", f"/equipos/{ref}")

    def create_equipment(self, session: ApiSession, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request(session, "POST", "/equipos", json=payload)

    def create_assignment(
        self,
        session: ApiSession,
        usuario: str,
        equipo: str,
        accesorios: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"usuario": usuario, "equipo": equipo}
        if accesorios:
            payload["accesorios"] = accesorios
        return self._request(session, "POST", "/asignaciones", json=payload)

    def finalize_assignment(
        self, session: ApiSession, asignacion_id: str, motivo: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = {"motivoDevolucion": motivo} if motivo else {}
        return self._request(session, "PUT", f"/asignaciones/{asignacion_id}", json=payload)
