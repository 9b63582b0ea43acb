# app/models/almacenamiento.py
from sqlalchemy import Column, Integer, BigInteger, DateTime, ForeignKey, func

from app.db.base import Base

MIB = 1024 * 1024

DEFAULT_DOCUMENTS_LIMIT = 500 * MIB   # 524288000
DEFAULT_EVIDENCES_LIMIT = 1024 * MIB  # 1073741824


class InstitutionStorageUsage(Base):
    """Contadores de uso por institución.

    Son acumulados "best effort" que se ajustan en cada subida/borrado; no se
    derivan de la suma real de archivos y se corrigen con la reconciliación.
    Un límite de 0 significa sin límite.
    """

    __tablename__ = "institution_storage_usage"

    id = Column(Integer, primary_key=True)
    institution_id = Column(Integer, ForeignKey("instituciones.id", ondelete="CASCADE"), nullable=False, unique=True)

    documents_usage = Column(BigInteger, nullable=False, default=0)
    documents_limit = Column(BigInteger, nullable=False, default=DEFAULT_DOCUMENTS_LIMIT)
    evidences_usage = Column(BigInteger, nullable=False, default=0)
    evidences_limit = Column(BigInteger, nullable=False, default=DEFAULT_EVIDENCES_LIMIT)

    last_calculated_at = Column(DateTime, nullable=False, server_default=func.now())
