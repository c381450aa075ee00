"""
Configuración del backend de inventario TI
"""
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_strip(s: str) -> List[str]:
    """Separa una cadena por comas y elimina espacios."""
    return [x.strip() for x in s.split(",") if x.strip()]


class Settings(BaseSettings):
    """Ajustes de la aplicación"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="",
    )

    # Generales
    app_name: str = "Inventario TI"
    environment: Literal["development", "production", "test"] = "development"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    # Base de datos (obligatoria, sin valor por defecto)
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle: int = 3600
    db_connect_timeout: int = 10

    # JWT (obligatoria, sin valor por defecto)
    secret_key: str
    algorithm: str = "HS256"
    # Vida del token: 7 días. Si se define access_token_expire_seconds, tiene prioridad.
    access_token_expire_minutes: int = 60 * 24 * 7
    access_token_expire_seconds: Optional[int] = None
    cookie_name: str = "jwt"

    # Coste de bcrypt; en tests se baja para acelerar
    bcrypt_rounds: int = 12

    # Tamaño máximo del cuerpo de la petición (10 MiB)
    max_body_size: int = 10 * 1024 * 1024

    # Admin inicial
    seed_admin_enabled: bool = True
    seed_admin_email: str = "admin@inventario.com"
    seed_admin_password: str = "Admin12345"

    # CORS: "*" o "http://a,http://b"
    cors_origins: str = "*"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def access_token_ttl_seconds(self) -> int:
        if self.access_token_expire_seconds:
            return self.access_token_expire_seconds
        return self.access_token_expire_minutes * 60

    def get_cors_origins(self) -> List[str]:
        out = _split_strip(self.cors_origins)
        return out if out else ["*"]


# Instancia global
settings = Settings()

# Validación de ajustes críticos al importar
if len(settings.secret_key) < 32:
    raise ValueError(
        "SECRET_KEY debe tener al menos 32 caracteres. "
        "Genérela con: openssl rand -hex 32"
    )
