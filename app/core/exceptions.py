# app/core/exceptions.py
"""
Errores de dominio.

Cada error lleva un mensaje legible (se muestra tal cual al usuario) y un
`code` estable para manejo programático. El handler de app.main los traduce
a HTTP usando `status_code`.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base para violaciones de reglas de negocio."""

    status_code = 400
    default_code = "DOMAIN_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"detail": self.message, "kind": self.code}
        if self.details:
            out["details"] = self.details
        return out


class BadRequestError(DomainError):
    default_code = "BAD_REQUEST"


class InvalidFileError(DomainError):
    """Archivo ausente, demasiado grande o con tipo MIME no permitido."""

    default_code = "INVALID_FILE"


class StorageError(InvalidFileError):
    """El proveedor de storage rechazó o no pudo completar la operación."""

    default_code = "STORAGE_ERROR"


class StorageNotConfiguredError(StorageError):
    default_code = "STORAGE_NOT_CONFIGURED"

    def __init__(self, message: str = "Storage no configurado"):
        super().__init__(message)


class QuotaExceededError(DomainError):
    status_code = 403
    default_code = "QUOTA_EXCEEDED"


class NotFoundError(DomainError):
    status_code = 404
    default_code = "NOT_FOUND"


class ForbiddenError(DomainError):
    status_code = 403
    default_code = "FORBIDDEN"


class InvalidStateTransitionError(DomainError):
    default_code = "INVALID_STATE_TRANSITION"
