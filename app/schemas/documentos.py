# app/schemas/documentos.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import DocumentCategory
from app.schemas.usuarios import UsuarioResumen


class DocumentoCreate(BaseModel):
    institution_id: int
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: DocumentCategory
    visible_to_roles: List[str] = Field(default_factory=list)


class DocumentoUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[DocumentCategory] = None
    visible_to_roles: Optional[List[str]] = None
    is_active: Optional[bool] = None


class DocumentoOut(BaseModel):
    id: int
    institution_id: int
    title: str
    description: Optional[str] = None
    category: DocumentCategory
    file_url: str
    file_name: str
    file_size: int
    mime_type: str
    visible_to_roles: List[str] = []
    is_active: bool
    uploaded_by_id: int
    created_at: Optional[datetime] = None
    uploaded_by: Optional[UsuarioResumen] = None

    class Config:
        from_attributes = True


class CategoriaOut(BaseModel):
    value: str
    label: str


class DownloadUrlOut(BaseModel):
    url: str
    expires_in: int


class StorageUsageOut(BaseModel):
    documents_usage: int
    documents_limit: int
    documents_usage_percent: float
    evidences_usage: int
    evidences_limit: int
    evidences_usage_percent: float


class CleanupIn(BaseModel):
    institution_id: Optional[int] = None


class CleanupOut(BaseModel):
    deleted_files: List[str]
    recalculated_usage: int
    summary: str
