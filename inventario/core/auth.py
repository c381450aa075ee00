"""
Autenticación común del inventario: contraseñas, JWT y extracción del token
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from uuid import UUID

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError

from .config import settings

ALGORITHM = settings.algorithm

# Esquema OAuth2 para leer el token de la cabecera Authorization
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix}/auth/login",
    auto_error=False,
)


def _to_bytes(s: str, max_len: int = 72) -> bytes:
    b = s.encode("utf-8")
    return b[:max_len] if len(b) > max_len else b


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Comprueba la contraseña contra el hash (bcrypt, hasta 72 bytes)."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_to_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Hash con formato no válido
        return False


def get_password_hash(password: str) -> str:
    """Genera el hash de la contraseña (bcrypt, hasta 72 bytes)."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_to_bytes(password), salt).decode("utf-8")


def create_access_token(
    user_id: UUID | str,
    email: str,
    rol: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Crea el JWT de sesión.

    Payload:
        {
            "sub": "uuid del usuario",
            "email": "usuario@empresa.com",
            "rol": "user" | "tecnico" | "admin",
            "exp": 1234567890,
            "iat": 1234567890
        }
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(seconds=settings.access_token_ttl_seconds())
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "rol": rol,
        "exp": now + expires_delta,
        "iat": now,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict]:
    """Decodifica el JWT. Devuelve None si la firma o la expiración no son válidas."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None


def get_token(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Token de la cabecera Authorization; si falta, el de la cookie de sesión."""
    if token:
        return token
    return request.cookies.get(settings.cookie_name) or None


def get_token_payload(token: Optional[str] = Depends(get_token)) -> Dict:
    """
    Payload del JWT como dependency de FastAPI.

    Raises:
        HTTPException: 401 si el token falta, es inválido o ha expirado
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No autorizado. Inicie sesión para acceder",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception
    payload = decode_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido o expirado",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def set_session_cookie(response, token: str) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.access_token_ttl_seconds(),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(key=settings.cookie_name, httponly=True, samesite="lax")
