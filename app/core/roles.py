# app/core/roles.py
from __future__ import annotations

from typing import Any, Iterable, Optional

from app.core.enums import RoleName

# Roles que ven todos los documentos sin filtro de visibilidad
DOCUMENT_ADMIN_ROLES = frozenset({RoleName.SUPERADMIN.value, RoleName.ADMIN_INSTITUTIONAL.value})

# Roles que pueden crear tareas sin ser líderes de gestión
TASK_ADMIN_ROLES = frozenset(
    {RoleName.SUPERADMIN.value, RoleName.ADMIN_INSTITUTIONAL.value, RoleName.COORDINADOR.value}
)


def _role_name(entry: Any) -> Optional[str]:
    if entry is None:
        return None
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        nested = entry.get("role")
        if nested is not None:
            return _role_name(nested)
        return entry.get("name") or entry.get("roleName")

    # Objetos ORM: Rol(name=...) o asociaciones con .role
    nested = getattr(entry, "role", None)
    if nested is not None:
        return _role_name(nested)
    return getattr(entry, "name", None)


def resolve_role_names(roles: Optional[Iterable[Any]]) -> frozenset[str]:
    """Normaliza las distintas formas de rol a un set de nombres en mayúscula.

    Acepta strings, dicts ({"name": ...} o {"role": {"name": ...}}) y
    objetos con `.name` o `.role.name`. Entradas sin nombre se ignoran.
    """
    names = set()
    for entry in roles or ():
        name = _role_name(entry)
        if name:
            names.add(str(name).strip().upper())
    return frozenset(names)
