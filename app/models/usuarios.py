# app/models/usuarios.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Table, func
from sqlalchemy.orm import relationship
from app.db.base import Base

usuario_roles = Table(
    "usuario_roles",
    Base.metadata,
    Column("usuario_id", Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), primary_key=True),
    Column("rol_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Rol(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    # SUPERADMIN | ADMIN_INSTITUTIONAL | COORDINADOR | DOCENTE | SECRETARIA
    name = Column(String(50), unique=True, nullable=False)


class Usuario(Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True)

    institution_id = Column(Integer, ForeignKey("instituciones.id", ondelete="CASCADE"), nullable=True)
    institution = relationship("Institucion")

    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(120), nullable=False, default="")
    last_name = Column(String(120), nullable=False, default="")

    password_hash = Column(String, nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)

    roles = relationship("Rol", secondary=usuario_roles, lazy="selectin")
