# app/core/security.py
from datetime import datetime, timedelta
from typing import Iterable, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from app.core.config import get_settings

JWT_ALG = "HS256"
JWT_EXPIRES_MIN = 60 * 12  # medio día

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def user_claims(user, roles: Iterable[str]) -> dict:
    """Claims del token de sesión. Solo `sub` se usa para autenticar."""
    return {
        "sub": str(user.id),
        "institution_id": user.institution_id,
        "roles": sorted(roles),
        "email": user.email,
    }


def create_access_token(data: dict, expires_minutes: int | None = None) -> str:
    mins = expires_minutes if expires_minutes is not None else JWT_EXPIRES_MIN
    now = datetime.utcnow()
    claims = {**data, "iat": now, "exp": now + timedelta(minutes=mins)}
    return jwt.encode(claims, get_settings().jwt_secret, algorithm=JWT_ALG)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, get_settings().jwt_secret, algorithms=[JWT_ALG])
    except JWTError as e:
        raise ValueError("Token inválido") from e
