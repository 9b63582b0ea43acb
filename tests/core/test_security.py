from types import SimpleNamespace

import pytest
from jose import jwt

from app.core.security import create_access_token, decode_token, hash_password, user_claims, verify_password


def test_password_hash_verifies():
    hashed = hash_password("Clave123*")

    assert hashed != "Clave123*"
    assert verify_password("Clave123*", hashed)
    assert not verify_password("clave123*", hashed)
    assert not verify_password("Clave123*", None)


def test_token_carries_user_claims():
    user = SimpleNamespace(id=7, institution_id=3, email="ana@colegio.edu")

    payload = decode_token(create_access_token(user_claims(user, {"DOCENTE", "COORDINADOR"})))

    assert payload["sub"] == "7"
    assert payload["institution_id"] == 3
    assert payload["roles"] == ["COORDINADOR", "DOCENTE"]
    assert payload["exp"] > payload["iat"]


def test_expired_or_tampered_token_is_rejected():
    expired = create_access_token({"sub": "1"}, expires_minutes=-1)
    with pytest.raises(ValueError):
        decode_token(expired)

    forged = jwt.encode({"sub": "1"}, "otra-clave", algorithm="HS256")
    with pytest.raises(ValueError):
        decode_token(forged)
