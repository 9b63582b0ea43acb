# app/services/cuotas.py
"""
Contabilidad de almacenamiento por institución.

Dos contadores independientes (documentos y evidencias) contra límites
configurables por institución. La verificación y el ajuste son pasos
separados: dos subidas concurrentes pueden pasar el check antes de que
cualquiera ajuste el contador y superar el límite por poco. Es una
limitación aceptada; la reconciliación corrige la deriva de documentos.
"""

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.enums import QuotaCategory
from app.core.exceptions import QuotaExceededError
from app.core.logging_config import logger
from app.models.almacenamiento import (
    DEFAULT_DOCUMENTS_LIMIT,
    DEFAULT_EVIDENCES_LIMIT,
    MIB,
    InstitutionStorageUsage,
)
from app.models.documentos import InstitutionalDocument

_COLUMNS = {
    QuotaCategory.DOCUMENTS: ("documents_usage", "documents_limit"),
    QuotaCategory.EVIDENCE: ("evidences_usage", "evidences_limit"),
}


def _percent(usage: int, limit: int) -> float:
    return (usage / limit) * 100 if limit > 0 else 0


class QuotaService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, institution_id: int):
        return self.db.execute(
            select(InstitutionStorageUsage).where(InstitutionStorageUsage.institution_id == institution_id)
        ).scalar_one_or_none()

    def ensure_usage_record(self, institution_id: int) -> InstitutionStorageUsage:
        usage = self._get(institution_id)
        if usage is not None:
            return usage

        usage = InstitutionStorageUsage(
            institution_id=institution_id,
            documents_usage=0,
            documents_limit=DEFAULT_DOCUMENTS_LIMIT,
            evidences_usage=0,
            evidences_limit=DEFAULT_EVIDENCES_LIMIT,
        )
        self.db.add(usage)
        self.db.commit()
        self.db.refresh(usage)
        logger.info(f"[Cuotas] Registro de uso creado para institución {institution_id}")
        return usage

    def check_limit(self, institution_id: int, category: QuotaCategory, incoming_bytes: int) -> None:
        """Falla con QuotaExceededError si la subida supera el límite.

        Sin registro de uso se considera uso cero y el registro se crea.
        """
        category = QuotaCategory(category)
        usage = self._get(institution_id)
        if usage is None:
            self.ensure_usage_record(institution_id)
            return

        usage_col, limit_col = _COLUMNS[category]
        current = int(getattr(usage, usage_col) or 0)
        limit = int(getattr(usage, limit_col) or 0)

        if limit > 0 and current + incoming_bytes > limit:
            logger.warning(
                f"[Cuotas] Límite de {category.value} superado para institución {institution_id}: "
                f"{current} + {incoming_bytes} > {limit}"
            )
            if category == QuotaCategory.EVIDENCE:
                raise QuotaExceededError("Límite de almacenamiento de evidencias alcanzado")
            raise QuotaExceededError(
                f"Límite de almacenamiento alcanzado. "
                f"Uso: {current / MIB:.2f}MB / {limit / MIB:.2f}MB"
            )

    def adjust_usage(self, institution_id: int, category: QuotaCategory, delta_bytes: int) -> None:
        """Incrementa (o decrementa con delta negativo) el contador en una sola sentencia."""
        usage_col, _ = _COLUMNS[QuotaCategory(category)]
        column = getattr(InstitutionStorageUsage, usage_col)

        result = self.db.execute(
            update(InstitutionStorageUsage)
            .where(InstitutionStorageUsage.institution_id == institution_id)
            .values({usage_col: column + delta_bytes, "last_calculated_at": datetime.utcnow()})
        )

        if result.rowcount == 0:
            usage = InstitutionStorageUsage(
                institution_id=institution_id,
                documents_usage=0,
                documents_limit=DEFAULT_DOCUMENTS_LIMIT,
                evidences_usage=0,
                evidences_limit=DEFAULT_EVIDENCES_LIMIT,
            )
            setattr(usage, usage_col, max(0, delta_bytes))
            self.db.add(usage)

        self.db.commit()
        # Las instancias cargadas pueden tener el valor viejo
        self.db.expire_all()

    def reconcile(self, institution_id: int) -> int:
        """Recalcula documents_usage como la suma exacta de file_size.

        No toca evidences_usage.
        """
        total = self.db.execute(
            select(func.coalesce(func.sum(InstitutionalDocument.file_size), 0)).where(
                InstitutionalDocument.institution_id == institution_id
            )
        ).scalar_one()
        total = int(total)

        usage = self.ensure_usage_record(institution_id)
        previous = int(usage.documents_usage or 0)
        usage.documents_usage = total
        usage.last_calculated_at = datetime.utcnow()
        self.db.commit()

        if previous != total:
            logger.info(f"[Cuotas] Institución {institution_id}: documentos {previous} -> {total} bytes")
        return total

    def snapshot(self, institution_id: int) -> dict:
        """Vista de solo lectura; sin registro devuelve ceros contra los límites por defecto."""
        usage = self._get(institution_id)
        if usage is None:
            return {
                "documents_usage": 0,
                "documents_limit": DEFAULT_DOCUMENTS_LIMIT,
                "documents_usage_percent": 0,
                "evidences_usage": 0,
                "evidences_limit": DEFAULT_EVIDENCES_LIMIT,
                "evidences_usage_percent": 0,
            }

        documents_usage = int(usage.documents_usage or 0)
        documents_limit = int(usage.documents_limit or 0)
        evidences_usage = int(usage.evidences_usage or 0)
        evidences_limit = int(usage.evidences_limit or 0)
        return {
            "documents_usage": documents_usage,
            "documents_limit": documents_limit,
            "documents_usage_percent": _percent(documents_usage, documents_limit),
            "evidences_usage": evidences_usage,
            "evidences_limit": evidences_limit,
            "evidences_usage_percent": _percent(evidences_usage, evidences_limit),
        }
