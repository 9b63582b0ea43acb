# app/services/documentos.py
"""
Documentos institucionales (manuales, reglamentos, PEI, SIEE, ...).

Flujo de subida: validar archivo -> verificar cuota -> subir a storage ->
guardar fila -> ajustar contador. Si la fila no se puede guardar se borra el
objeto recién subido (best effort) y se propaga el error original.

Estructura en storage (bucket documentos):
  institucion/{institution_id}/institucionales/{categoria}/{categoria}_{epoch_ms}.{ext}
"""

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.enums import DOCUMENT_CATEGORY_LABELS, DocumentCategory, QuotaCategory, as_options
from app.core.exceptions import NotFoundError
from app.core.logging_config import logger
from app.core.roles import DOCUMENT_ADMIN_ROLES
from app.db.base import enum_order
from app.models.documentos import InstitutionalDocument
from app.schemas.documentos import DocumentoCreate, DocumentoUpdate
from app.services.archivos import MIB, UploadedFile, epoch_millis, file_extension, validate_file
from app.services.cuotas import QuotaService
from app.services.storage import path_from_public_url

MAX_FILE_SIZE = 10 * MIB

ALLOWED_MIME_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "image/jpeg",
    "image/png",
    "image/webp",
)

DOWNLOAD_URL_EXPIRES = 900  # 15 minutos

# Campos que un update puede dejar en null
NULLABLE_FIELDS = {"description"}


def document_prefix(institution_id: int) -> str:
    return f"institucion/{institution_id}/institucionales"


def document_path(institution_id: int, category: DocumentCategory, ext: str, millis: int) -> str:
    slug = DocumentCategory(category).value.lower()
    return f"{document_prefix(institution_id)}/{slug}/{slug}_{millis}.{ext}"


class InstitutionalDocumentService:
    def __init__(self, db: Session, storage, bucket: str = "documentos", quotas: Optional[QuotaService] = None):
        self.db = db
        self.storage = storage
        self.bucket = bucket
        self.quotas = quotas or QuotaService(db)

    # -------------------------
    # Alta
    # -------------------------
    def create(self, dto: DocumentoCreate, file: Optional[UploadedFile], uploaded_by_id: int) -> InstitutionalDocument:
        file = validate_file(file, ALLOWED_MIME_TYPES, MAX_FILE_SIZE)

        # Antes de tocar storage
        self.quotas.check_limit(dto.institution_id, QuotaCategory.DOCUMENTS, file.size)

        path = document_path(dto.institution_id, dto.category, file_extension(file.filename), epoch_millis())
        self.storage.upload(self.bucket, path, file.content, file.content_type)
        url = self.storage.get_public_url(self.bucket, path)

        doc = InstitutionalDocument(
            institution_id=dto.institution_id,
            title=dto.title,
            description=dto.description,
            category=dto.category,
            file_url=url,
            file_name=file.filename,
            file_size=file.size,
            mime_type=file.content_type,
            visible_to_roles=list(dto.visible_to_roles or []),
            uploaded_by_id=uploaded_by_id,
        )
        try:
            self.db.add(doc)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"[Documentos] Falló el registro en BD, eliminando {path} de storage")
            try:
                self.storage.remove_objects(self.bucket, [path])
            except Exception as cleanup_error:
                logger.error(f"[Documentos] No se pudo eliminar el archivo huérfano {path}: {cleanup_error}")
            raise

        self.quotas.adjust_usage(dto.institution_id, QuotaCategory.DOCUMENTS, file.size)
        self.db.refresh(doc)
        logger.info(f"[Documentos] Documento {doc.id} creado ({file.size} bytes) en institución {dto.institution_id}")
        return doc

    # -------------------------
    # Consultas
    # -------------------------
    def find_all(self, institution_id: int, caller_roles: Optional[Iterable[str]] = None) -> list[InstitutionalDocument]:
        stmt = (
            select(InstitutionalDocument)
            .where(InstitutionalDocument.institution_id == institution_id)
            .where(InstitutionalDocument.is_active.is_(True))
            .order_by(
                enum_order(InstitutionalDocument.category, DocumentCategory).asc(),
                InstitutionalDocument.created_at.desc(),
                InstitutionalDocument.id.desc(),
            )
        )
        documents = list(self.db.execute(stmt).unique().scalars().all())

        if caller_roles is None:
            return documents

        roles = set(caller_roles)
        if roles & DOCUMENT_ADMIN_ROLES:
            return documents

        return [d for d in documents if not d.visible_to_roles or roles.intersection(d.visible_to_roles)]

    def find_one(self, document_id: int) -> InstitutionalDocument:
        doc = self.db.get(InstitutionalDocument, document_id)
        if doc is None:
            raise NotFoundError("Documento no encontrado")
        return doc

    def get_categories(self) -> list[dict]:
        return as_options(DOCUMENT_CATEGORY_LABELS)

    # -------------------------
    # Cambios
    # -------------------------
    def update(self, document_id: int, dto: DocumentoUpdate) -> InstitutionalDocument:
        doc = self.find_one(document_id)

        data = dto.model_dump(exclude_unset=True)
        for k, v in data.items():
            if v is None and k not in NULLABLE_FIELDS:
                continue
            setattr(doc, k, v)

        self.db.commit()
        self.db.refresh(doc)
        return doc

    def delete(self, document_id: int) -> dict:
        doc = self.find_one(document_id)
        institution_id = doc.institution_id
        size = int(doc.file_size or 0)

        # Un archivo huérfano en storage es preferible a una BD inconsistente
        try:
            self.storage.remove_objects(self.bucket, [path_from_public_url(doc.file_url, self.bucket)])
        except Exception as e:
            logger.error(f"[Documentos] Error eliminando archivo del documento {document_id}: {e}")

        self.quotas.adjust_usage(institution_id, QuotaCategory.DOCUMENTS, -size)

        self.db.delete(doc)
        self.db.commit()
        logger.info(f"[Documentos] Documento {document_id} eliminado")
        return {"success": True}

    # -------------------------
    # Storage
    # -------------------------
    def cleanup_orphaned_files(self, institution_id: int) -> dict:
        """Borra de storage los archivos sin fila en BD y recalcula el uso de documentos."""
        stored = self.storage.list_objects(self.bucket, document_prefix(institution_id))

        rows = self.db.execute(
            select(InstitutionalDocument.file_url).where(InstitutionalDocument.institution_id == institution_id)
        ).scalars().all()
        referenced = {path_from_public_url(url, self.bucket) for url in rows}

        orphans = [p for p in stored if p not in referenced]
        if orphans:
            self.storage.remove_objects(self.bucket, orphans)
            logger.info(f"[Documentos] {len(orphans)} archivo(s) huérfano(s) eliminados en institución {institution_id}")

        total = self.quotas.reconcile(institution_id)
        return {
            "deleted_files": orphans,
            "recalculated_usage": total,
            "summary": f"Se eliminaron {len(orphans)} archivo(s) huérfano(s). Uso recalculado: {total / MIB:.2f}MB",
        }

    def get_download_url(self, document_id: int) -> dict:
        doc = self.find_one(document_id)
        path = path_from_public_url(doc.file_url, self.bucket)

        try:
            url = self.storage.create_signed_url(self.bucket, path, DOWNLOAD_URL_EXPIRES)
            return {"url": url, "expires_in": DOWNLOAD_URL_EXPIRES}
        except Exception as e:
            # Si el bucket es público la URL guardada sigue sirviendo
            logger.warning(f"[Documentos] No se pudo firmar URL para documento {document_id}: {e}")
            return {"url": doc.file_url, "expires_in": 0}

    def get_storage_usage(self, institution_id: int) -> dict:
        return self.quotas.snapshot(institution_id)
