# app/core/deps.py
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.enums import RoleName
from app.core.exceptions import BadRequestError, NotFoundError
from app.core.logging_config import logger
from app.core.roles import resolve_role_names
from app.core.security import decode_token
from app.db.session import get_db
from app.models.usuarios import Usuario
from app.services.archivos import UploadedFile
from app.services.documentos import InstitutionalDocumentService
from app.services.gestion import ManagementTaskService
from app.services.storage import SupabaseStorage

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Usuario autenticado con sus roles ya normalizados."""

    user: Usuario
    roles: frozenset

    @property
    def id(self) -> int:
        return self.user.id

    @property
    def institution_id(self) -> Optional[int]:
        return self.user.institution_id

    def has_any(self, *names: str) -> bool:
        return bool(self.roles & {str(getattr(n, "value", n)) for n in names})


def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Usuario:
    if not creds or not creds.credentials:
        raise HTTPException(status_code=401, detail="No autenticado")

    try:
        payload = decode_token(creds.credentials)
    except ValueError:
        raise HTTPException(status_code=401, detail="Token inválido")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token sin 'sub'")

    user = db.query(Usuario).filter(Usuario.id == int(user_id)).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Usuario no válido/inactivo")

    return user


def get_principal(user: Usuario = Depends(get_current_user)) -> Principal:
    return Principal(user=user, roles=resolve_role_names(user.roles))


def require_roles(*allowed: RoleName):
    names = frozenset(r.value for r in allowed)

    def _guard(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.roles & names:
            raise HTTPException(status_code=403, detail="No tienes permiso para esta acción")
        return principal

    return _guard


def resolve_institution_id(principal: Principal, requested_id: Optional[int] = None) -> int:
    """
    SUPERADMIN puede administrar cualquier institución enviándola explícita.
    Los demás usuarios SIEMPRE quedan en la institución de su usuario.
    """
    if principal.has_any(RoleName.SUPERADMIN) and requested_id:
        return int(requested_id)

    if principal.institution_id:
        if requested_id and int(requested_id) != principal.institution_id:
            logger.warning(
                f"[Seguridad] Usuario {principal.id} pidió institución {requested_id} "
                f"pero pertenece a {principal.institution_id}"
            )
        return principal.institution_id

    raise BadRequestError("No se pudo determinar la institución")


def ensure_institution_access(principal: Principal, institution_id: int, not_found_message: str) -> None:
    """Un recurso de otra institución se responde como inexistente (salvo SUPERADMIN)."""
    if resolve_institution_id(principal, institution_id) != institution_id:
        raise NotFoundError(not_found_message)


@lru_cache
def get_storage() -> SupabaseStorage:
    return SupabaseStorage.from_settings(get_settings())


def close_storage() -> None:
    """Cierra el cliente HTTP del storage si llegó a crearse."""
    if get_storage.cache_info().currsize:
        get_storage().close()
        get_storage.cache_clear()


def get_document_service(
    db: Session = Depends(get_db),
    storage: SupabaseStorage = Depends(get_storage),
) -> InstitutionalDocumentService:
    return InstitutionalDocumentService(db, storage, bucket=get_settings().storage_bucket)


def get_task_service(
    db: Session = Depends(get_db),
    storage: SupabaseStorage = Depends(get_storage),
) -> ManagementTaskService:
    return ManagementTaskService(db, storage, bucket=get_settings().storage_bucket)


def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Convierte el UploadFile de FastAPI al archivo en memoria de los servicios."""
    if upload is None or not upload.filename:
        return None
    return UploadedFile(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        content=upload.file.read(),
    )
