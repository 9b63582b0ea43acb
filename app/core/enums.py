# app/core/enums.py
from __future__ import annotations

from enum import Enum


class RoleName(str, Enum):
    """Roles del sistema usados por los guards."""

    SUPERADMIN = "SUPERADMIN"
    ADMIN_INSTITUTIONAL = "ADMIN_INSTITUTIONAL"
    COORDINADOR = "COORDINADOR"
    DOCENTE = "DOCENTE"
    SECRETARIA = "SECRETARIA"


class DocumentCategory(str, Enum):
    MANUAL = "MANUAL"
    REGLAMENTO = "REGLAMENTO"
    FORMATO = "FORMATO"
    CIRCULAR = "CIRCULAR"
    PEI = "PEI"
    SIEE = "SIEE"
    OTRO = "OTRO"


class QuotaCategory(str, Enum):
    """Bolsas de almacenamiento contabilizadas por institución."""

    DOCUMENTS = "documents"
    EVIDENCE = "evidence"


class ManagementArea(str, Enum):
    ACADEMICA = "ACADEMICA"
    DIRECTIVA = "DIRECTIVA"
    COMUNITARIA = "COMUNITARIA"
    ADMINISTRATIVA = "ADMINISTRATIVA"


class TaskCategory(str, Enum):
    PLANEACION = "PLANEACION"
    SEGUIMIENTO = "SEGUIMIENTO"
    EVIDENCIA = "EVIDENCIA"
    REUNION = "REUNION"
    CAPACITACION = "CAPACITACION"
    PROYECTO = "PROYECTO"
    OTRO = "OTRO"


class TaskPriority(str, Enum):
    """El orden de declaración es el orden de prioridad (BAJA < URGENTE)."""

    BAJA = "BAJA"
    NORMAL = "NORMAL"
    ALTA = "ALTA"
    URGENTE = "URGENTE"


class TaskAssignmentStatus(str, Enum):
    """Estados de una asignación de tarea.

    PENDING -> IN_PROGRESS -> SUBMITTED -> APPROVED | REJECTED
    REJECTED vuelve a SUBMITTED al reenviar. CANCELLED solo por mutación
    administrativa directa.
    """

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


DOCUMENT_CATEGORY_LABELS = {
    DocumentCategory.MANUAL: "Manual",
    DocumentCategory.REGLAMENTO: "Reglamento",
    DocumentCategory.FORMATO: "Formato",
    DocumentCategory.CIRCULAR: "Circular",
    DocumentCategory.PEI: "PEI",
    DocumentCategory.SIEE: "SIEE",
    DocumentCategory.OTRO: "Otro",
}

AREA_LABELS = {
    ManagementArea.ACADEMICA: "Gestión Académica",
    ManagementArea.DIRECTIVA: "Gestión Directiva",
    ManagementArea.COMUNITARIA: "Gestión Comunitaria",
    ManagementArea.ADMINISTRATIVA: "Gestión Administrativa",
}

PRIORITY_LABELS = {
    TaskPriority.BAJA: "Baja",
    TaskPriority.NORMAL: "Normal",
    TaskPriority.ALTA: "Alta",
    TaskPriority.URGENTE: "Urgente",
}

TASK_CATEGORY_LABELS = {
    TaskCategory.PLANEACION: "Planeación",
    TaskCategory.SEGUIMIENTO: "Seguimiento",
    TaskCategory.EVIDENCIA: "Evidencia",
    TaskCategory.REUNION: "Reunión",
    TaskCategory.CAPACITACION: "Capacitación",
    TaskCategory.PROYECTO: "Proyecto",
    TaskCategory.OTRO: "Otro",
}

STATUS_LABELS = {
    TaskAssignmentStatus.PENDING: "Pendiente",
    TaskAssignmentStatus.IN_PROGRESS: "En Progreso",
    TaskAssignmentStatus.SUBMITTED: "Entregada",
    TaskAssignmentStatus.APPROVED: "Aprobada",
    TaskAssignmentStatus.REJECTED: "Rechazada",
    TaskAssignmentStatus.CANCELLED: "Cancelada",
}


def as_options(labels: dict) -> list[dict]:
    return [{"value": member.value, "label": label} for member, label in labels.items()]
