# app/schemas/usuarios.py
from pydantic import BaseModel
from typing import Optional


class UsuarioResumen(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None

    class Config:
        from_attributes = True
