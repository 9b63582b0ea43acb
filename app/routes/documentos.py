# app/routes/documentos.py
import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.core.deps import (
    Principal,
    ensure_institution_access,
    get_document_service,
    read_upload,
    require_roles,
    resolve_institution_id,
)
from app.core.enums import DocumentCategory, RoleName
from app.core.exceptions import BadRequestError
from app.core.logging_config import logger
from app.schemas.documentos import (
    CategoriaOut,
    CleanupIn,
    CleanupOut,
    DocumentoCreate,
    DocumentoOut,
    DocumentoUpdate,
    DownloadUrlOut,
    StorageUsageOut,
)
from app.services.documentos import InstitutionalDocumentService

router = APIRouter(prefix="/institutional-documents", tags=["Documentos institucionales"])

SUPERADMIN = RoleName.SUPERADMIN
ADMIN = RoleName.ADMIN_INSTITUTIONAL
COORDINADOR = RoleName.COORDINADOR
DOCENTE = RoleName.DOCENTE
SECRETARIA = RoleName.SECRETARIA


def _parse_category(raw: Optional[str]) -> DocumentCategory:
    normalized = (raw or "").strip().upper() or DocumentCategory.OTRO.value
    try:
        return DocumentCategory(normalized)
    except ValueError:
        validas = ", ".join(c.value for c in DocumentCategory)
        raise BadRequestError(f"Categoría inválida: {raw}. Válidas: {validas}")


def _parse_roles(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        roles = json.loads(raw)
    except ValueError:
        raise BadRequestError("visible_to_roles debe ser un arreglo JSON")
    if not isinstance(roles, list):
        raise BadRequestError("visible_to_roles debe ser un arreglo JSON")
    return [str(r) for r in roles]


@router.post("", response_model=DocumentoOut)
def crear_documento(
    title: str = Form(...),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    visible_to_roles: Optional[str] = Form(None),
    institution_id: Optional[int] = Form(None),
    file: Optional[UploadFile] = File(None),
    principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN, COORDINADOR)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    dto = DocumentoCreate(
        institution_id=resolve_institution_id(principal, institution_id),
        title=title,
        description=description,
        category=_parse_category(category),
        visible_to_roles=_parse_roles(visible_to_roles),
    )
    logger.info(
        f"[Documentos] POST institution={dto.institution_id} category={dto.category.value} "
        f"file={file.filename if file else None} user={principal.id}"
    )
    return service.create(dto, read_upload(file), principal.id)


@router.get("", response_model=list[DocumentoOut])
def listar_documentos(
    institution_id: Optional[int] = None,
    principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN, COORDINADOR, DOCENTE, SECRETARIA)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    inst_id = resolve_institution_id(principal, institution_id)
    return service.find_all(inst_id, principal.roles)


@router.get("/categories", response_model=list[CategoriaOut])
def listar_categorias(
    _principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN, COORDINADOR)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    return service.get_categories()


@router.get("/storage-usage", response_model=StorageUsageOut)
def uso_almacenamiento(
    institution_id: Optional[int] = None,
    principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    return service.get_storage_usage(resolve_institution_id(principal, institution_id))


@router.post("/cleanup", response_model=CleanupOut)
def limpiar_huerfanos(
    payload: CleanupIn,
    principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    inst_id = resolve_institution_id(principal, payload.institution_id)
    logger.info(f"[Documentos] Limpieza de huérfanos institution={inst_id} user={principal.id}")
    return service.cleanup_orphaned_files(inst_id)


def _documento_de_mi_institucion(service: InstitutionalDocumentService, document_id: int, principal: Principal):
    doc = service.find_one(document_id)
    ensure_institution_access(principal, doc.institution_id, "Documento no encontrado")
    return doc


@router.get("/{document_id}", response_model=DocumentoOut)
def obtener_documento(
    document_id: int,
    principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN, COORDINADOR, DOCENTE, SECRETARIA)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    return _documento_de_mi_institucion(service, document_id, principal)


@router.get("/{document_id}/download-url", response_model=DownloadUrlOut)
def url_descarga(
    document_id: int,
    principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN, COORDINADOR, DOCENTE, SECRETARIA)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    _documento_de_mi_institucion(service, document_id, principal)
    return service.get_download_url(document_id)


@router.put("/{document_id}", response_model=DocumentoOut)
def actualizar_documento(
    document_id: int,
    payload: DocumentoUpdate,
    principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN, COORDINADOR)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    _documento_de_mi_institucion(service, document_id, principal)
    return service.update(document_id, payload)


@router.delete("/{document_id}")
def eliminar_documento(
    document_id: int,
    principal: Principal = Depends(require_roles(SUPERADMIN, ADMIN)),
    service: InstitutionalDocumentService = Depends(get_document_service),
):
    _documento_de_mi_institucion(service, document_id, principal)
    logger.info(f"[Documentos] DELETE documento={document_id} user={principal.id}")
    return service.delete(document_id)
