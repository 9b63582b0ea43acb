# app/models/gestion.py
from sqlalchemy import Column, Integer, BigInteger, String, Text, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint, func
from sqlalchemy.orm import relationship

from app.core.enums import ManagementArea, TaskAssignmentStatus, TaskCategory, TaskPriority
from app.db.base import Base


class ManagementLeader(Base):
    """Permiso delegado para crear tareas dentro de un área de gestión."""

    __tablename__ = "management_leaders"

    id = Column(Integer, primary_key=True)
    institution_id = Column(Integer, ForeignKey("instituciones.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False)
    area = Column(Enum(ManagementArea, native_enum=False, length=20), nullable=False)
    assigned_by_id = Column(Integer, ForeignKey("usuarios.id"), nullable=False)

    # Borrado lógico
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    user = relationship("Usuario", foreign_keys=[user_id], lazy="joined")
    assigned_by = relationship("Usuario", foreign_keys=[assigned_by_id], lazy="joined")


class ManagementTask(Base):
    __tablename__ = "management_tasks"

    id = Column(Integer, primary_key=True)
    institution_id = Column(Integer, ForeignKey("instituciones.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Enum(TaskCategory, native_enum=False, length=20), nullable=False)
    priority = Column(
        Enum(TaskPriority, native_enum=False, length=20),
        nullable=False,
        default=TaskPriority.NORMAL,
    )
    due_date = Column(DateTime, nullable=True)

    created_by_id = Column(Integer, ForeignKey("usuarios.id"), nullable=False)
    # Registro de líder del creador al momento de crear la tarea (si tenía)
    leader_id = Column(Integer, ForeignKey("management_leaders.id"), nullable=True)

    # Borrado lógico
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    created_by = relationship("Usuario", foreign_keys=[created_by_id], lazy="joined")
    leader = relationship("ManagementLeader")
    assignments = relationship(
        "TaskAssignment",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskAssignment.id",
    )


class TaskAssignment(Base):
    __tablename__ = "task_assignments"
    __table_args__ = (UniqueConstraint("task_id", "assignee_id", name="uq_task_assignee"),)

    id = Column(Integer, primary_key=True)
    task_id = Column(Integer, ForeignKey("management_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    assignee_id = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(
        Enum(TaskAssignmentStatus, native_enum=False, length=20),
        nullable=False,
        default=TaskAssignmentStatus.PENDING,
    )
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    response_note = Column(Text, nullable=True)

    evidence_url = Column(Text, nullable=True)
    evidence_file_name = Column(String(255), nullable=True)
    evidence_file_size = Column(BigInteger, nullable=True)
    evidence_mime_type = Column(String(120), nullable=True)

    verified_by_id = Column(Integer, ForeignKey("usuarios.id"), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    verification_note = Column(Text, nullable=True)

    task = relationship("ManagementTask", back_populates="assignments")
    assignee = relationship("Usuario", foreign_keys=[assignee_id], lazy="joined")
    verified_by = relationship("Usuario", foreign_keys=[verified_by_id], lazy="joined")
