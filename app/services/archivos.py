# app/services/archivos.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterable, Optional

from app.core.exceptions import InvalidFileError

MIB = 1024 * 1024


@dataclass(frozen=True)
class UploadedFile:
    """Archivo recibido en un request multipart, ya leído en memoria."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def validate_file(file: Optional[UploadedFile], allowed_types: Iterable[str], max_bytes: int) -> UploadedFile:
    if file is None:
        raise InvalidFileError("Archivo requerido")

    if file.size > max_bytes:
        raise InvalidFileError(f"El archivo excede el límite de {max_bytes // MIB}MB")

    if file.content_type not in allowed_types:
        raise InvalidFileError("Tipo de archivo no permitido")

    return file


def file_extension(filename: str, default: str = "pdf") -> str:
    if "." not in (filename or ""):
        return default
    return filename.rsplit(".", 1)[1] or default


def epoch_millis() -> int:
    return int(time.time() * 1000)
