# app/models/documentos.py
from sqlalchemy import Column, Integer, BigInteger, String, Text, Boolean, DateTime, ForeignKey, JSON, Enum, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from app.core.enums import DocumentCategory
from app.db.base import Base


class InstitutionalDocument(Base):
    __tablename__ = "institutional_documents"

    id = Column(Integer, primary_key=True)

    institution_id = Column(Integer, ForeignKey("instituciones.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Enum(DocumentCategory, native_enum=False, length=20), nullable=False)

    file_url = Column(Text, nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(120), nullable=False)

    # Lista vacía = visible para todos los roles
    visible_to_roles = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)

    uploaded_by_id = Column(Integer, ForeignKey("usuarios.id"), nullable=False)
    uploaded_by = relationship("Usuario", lazy="joined")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
