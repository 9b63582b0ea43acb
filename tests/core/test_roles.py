from types import SimpleNamespace

import pytest

from app.core.deps import Principal, close_storage, ensure_institution_access, get_storage, resolve_institution_id
from app.core.enums import RoleName
from app.core.exceptions import BadRequestError, NotFoundError
from app.core.roles import resolve_role_names
from app.services.storage import SupabaseStorage


def test_resolve_role_names_accepts_every_shape():
    roles = [
        "docente",
        {"name": "coordinador"},
        {"role": {"name": "SECRETARIA"}},
        {"roleName": "Admin_Institutional"},
        SimpleNamespace(name="superadmin"),
        SimpleNamespace(role=SimpleNamespace(name=" docente ")),
    ]

    assert resolve_role_names(roles) == {
        "DOCENTE",
        "COORDINADOR",
        "SECRETARIA",
        "ADMIN_INSTITUTIONAL",
        "SUPERADMIN",
    }


def test_resolve_role_names_ignores_entries_without_name():
    assert resolve_role_names([None, {}, {"role": None}, SimpleNamespace(), ""]) == frozenset()
    assert resolve_role_names(None) == frozenset()


def _principal(roles, institution_id=1, user_id=10):
    user = SimpleNamespace(id=user_id, institution_id=institution_id)
    return Principal(user=user, roles=resolve_role_names(roles))


def test_superadmin_can_target_any_institution():
    assert resolve_institution_id(_principal(["SUPERADMIN"]), 42) == 42
    assert resolve_institution_id(_principal(["SUPERADMIN"]), None) == 1


def test_other_roles_stay_in_their_institution():
    assert resolve_institution_id(_principal(["ADMIN_INSTITUTIONAL"]), 42) == 1
    assert resolve_institution_id(_principal(["DOCENTE"]), None) == 1


def test_institution_is_required():
    with pytest.raises(BadRequestError):
        resolve_institution_id(_principal(["DOCENTE"], institution_id=None), 5)
    with pytest.raises(BadRequestError):
        resolve_institution_id(_principal(["SUPERADMIN"], institution_id=None), None)


def test_principal_has_any_accepts_enums_and_strings():
    principal = _principal(["COORDINADOR"])

    assert principal.has_any(RoleName.COORDINADOR, RoleName.DOCENTE)
    assert principal.has_any("COORDINADOR")
    assert not principal.has_any(RoleName.SUPERADMIN)


def test_resources_of_other_institutions_look_missing():
    ensure_institution_access(_principal(["ADMIN_INSTITUTIONAL"]), 1, "Documento no encontrado")
    ensure_institution_access(_principal(["SUPERADMIN"]), 42, "Documento no encontrado")

    with pytest.raises(NotFoundError, match="Documento no encontrado"):
        ensure_institution_access(_principal(["ADMIN_INSTITUTIONAL"]), 42, "Documento no encontrado")


def test_close_storage_closes_the_cached_client(monkeypatch):
    closed = []
    monkeypatch.setattr(SupabaseStorage, "close", lambda self: closed.append(self))
    get_storage.cache_clear()

    close_storage()
    assert closed == []

    storage = get_storage()
    close_storage()

    assert closed == [storage]
    assert get_storage.cache_info().currsize == 0
