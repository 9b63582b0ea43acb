# app/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.deps import Principal, get_principal
from app.core.roles import resolve_role_names
from app.core.security import create_access_token, user_claims, verify_password
from app.db.session import get_db
from app.models.usuarios import Usuario

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str
    password: str


def _user_out(user: Usuario, roles) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "institution_id": user.institution_id,
        "roles": sorted(roles),
    }


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()

    user = db.query(Usuario).filter(Usuario.email == email).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Credenciales inválidas")

    if not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Credenciales inválidas")

    roles = resolve_role_names(user.roles)
    token = create_access_token(user_claims(user, roles))

    return {
        "ok": True,
        "access_token": token,
        "token_type": "bearer",
        "user": _user_out(user, roles),
    }


@router.get("/me")
def me(principal: Principal = Depends(get_principal)):
    return _user_out(principal.user, principal.roles)
