# app/services/gestion.py
"""
Tareas de gestión: líderes, tareas, asignaciones y su verificación.

Máquina de estados de TaskAssignment.status:

  PENDING     --start-->             IN_PROGRESS
  PENDING     --submit/complete-->   SUBMITTED
  IN_PROGRESS --submit/complete-->   SUBMITTED
  REJECTED    --submit/complete-->   SUBMITTED   (reenvío)
  SUBMITTED   --verify(APPROVED)-->  APPROVED
  SUBMITTED   --verify(REJECTED)-->  REJECTED

La verificación no comprueba que el verificador sea el creador de la tarea
ni un líder; esa autorización queda en el guard de roles del endpoint.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.enums import (
    AREA_LABELS,
    PRIORITY_LABELS,
    STATUS_LABELS,
    TASK_CATEGORY_LABELS,
    ManagementArea,
    QuotaCategory,
    TaskAssignmentStatus,
    TaskCategory,
    TaskPriority,
    as_options,
)
from app.core.exceptions import ForbiddenError, InvalidStateTransitionError, NotFoundError
from app.core.logging_config import logger
from app.db.base import enum_order
from app.models.gestion import ManagementLeader, ManagementTask, TaskAssignment
from app.models.usuarios import Usuario
from app.schemas.gestion import LeaderCreate, TaskCreate, TaskUpdate
from app.services.archivos import MIB, UploadedFile, epoch_millis, file_extension, validate_file
from app.services.cuotas import QuotaService

MAX_EVIDENCE_SIZE = 5 * MIB

ALLOWED_EVIDENCE_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)

# Estados desde los que el docente puede entregar
SUBMITTABLE = (
    TaskAssignmentStatus.PENDING,
    TaskAssignmentStatus.IN_PROGRESS,
    TaskAssignmentStatus.REJECTED,
)

VERDICTS = (TaskAssignmentStatus.APPROVED, TaskAssignmentStatus.REJECTED)

# Campos de la tarea que un update puede dejar en null
TASK_NULLABLE_FIELDS = {"description", "due_date"}


def evidence_path(institution_id: int, task_id: int, user_id: int, ext: str, millis: int) -> str:
    return f"institucion/{institution_id}/tareas/{task_id}/{user_id}/evidence_{millis}.{ext}"


class ManagementTaskService:
    def __init__(self, db: Session, storage, bucket: str = "documentos", quotas: Optional[QuotaService] = None):
        self.db = db
        self.storage = storage
        self.bucket = bucket
        self.quotas = quotas or QuotaService(db)

    # ═════════════════════════════════════════
    # LÍDERES DE GESTIÓN
    # ═════════════════════════════════════════
    def create_leader(self, dto: LeaderCreate, assigned_by_id: int) -> ManagementLeader:
        user = self.db.get(Usuario, dto.user_id)
        if user is None:
            raise NotFoundError("Usuario no encontrado")

        leader = ManagementLeader(
            institution_id=dto.institution_id,
            user_id=dto.user_id,
            area=dto.area,
            assigned_by_id=assigned_by_id,
        )
        self.db.add(leader)
        self.db.commit()
        self.db.refresh(leader)
        logger.info(f"[Tareas] Usuario {dto.user_id} designado líder {dto.area.value} en institución {dto.institution_id}")
        return leader

    def get_leaders(self, institution_id: int) -> list[ManagementLeader]:
        stmt = (
            select(ManagementLeader)
            .where(ManagementLeader.institution_id == institution_id)
            .where(ManagementLeader.is_active.is_(True))
            .order_by(enum_order(ManagementLeader.area, ManagementArea).asc(), ManagementLeader.id.asc())
        )
        return list(self.db.execute(stmt).unique().scalars().all())

    def get_leader(self, leader_id: int) -> ManagementLeader:
        leader = self.db.get(ManagementLeader, leader_id)
        if leader is None:
            raise NotFoundError("Líder no encontrado")
        return leader

    def remove_leader(self, leader_id: int) -> dict:
        leader = self.get_leader(leader_id)
        leader.is_active = False
        self.db.commit()
        return {"success": True}

    def _active_leader(self, user_id: int, institution_id: int) -> Optional[ManagementLeader]:
        return self.db.execute(
            select(ManagementLeader)
            .where(ManagementLeader.user_id == user_id)
            .where(ManagementLeader.institution_id == institution_id)
            .where(ManagementLeader.is_active.is_(True))
            .limit(1)
        ).unique().scalar_one_or_none()

    def is_user_leader(self, user_id: int, institution_id: int) -> bool:
        return self._active_leader(user_id, institution_id) is not None

    # ═════════════════════════════════════════
    # TAREAS
    # ═════════════════════════════════════════
    def create_task(self, dto: TaskCreate, created_by_id: int) -> ManagementTask:
        # No bloquea: un admin sin registro de líder también crea tareas
        leader = self._active_leader(created_by_id, dto.institution_id)

        task = ManagementTask(
            institution_id=dto.institution_id,
            title=dto.title,
            description=dto.description,
            category=dto.category,
            priority=dto.priority or TaskPriority.NORMAL,
            due_date=dto.due_date,
            created_by_id=created_by_id,
            leader_id=leader.id if leader else None,
        )
        self.db.add(task)
        self.db.flush()

        # Una asignación por docente (ids repetidos se ignoran)
        for assignee_id in dict.fromkeys(dto.assignee_ids or []):
            self.db.add(TaskAssignment(task_id=task.id, assignee_id=assignee_id, status=TaskAssignmentStatus.PENDING))

        self.db.commit()
        logger.info(f"[Tareas] Tarea {task.id} creada con {len(set(dto.assignee_ids or []))} asignación(es)")
        return self.get_task(task.id)

    def get_task(self, task_id: int) -> ManagementTask:
        task = self.db.get(ManagementTask, task_id)
        if task is None:
            raise NotFoundError("Tarea no encontrada")
        return task

    def get_tasks(
        self,
        institution_id: int,
        status: Optional[TaskAssignmentStatus] = None,
        priority: Optional[TaskPriority] = None,
        category: Optional[TaskCategory] = None,
        created_by_id: Optional[int] = None,
    ) -> list[ManagementTask]:
        stmt = (
            select(ManagementTask)
            .where(ManagementTask.institution_id == institution_id)
            .where(ManagementTask.is_active.is_(True))
        )
        if priority:
            stmt = stmt.where(ManagementTask.priority == priority)
        if category:
            stmt = stmt.where(ManagementTask.category == category)
        if created_by_id:
            stmt = stmt.where(ManagementTask.created_by_id == created_by_id)
        if status:
            stmt = stmt.where(ManagementTask.assignments.any(TaskAssignment.status == status))

        stmt = stmt.order_by(
            enum_order(ManagementTask.priority, TaskPriority).desc(),
            ManagementTask.due_date.asc().nulls_last(),
            ManagementTask.created_at.desc(),
            ManagementTask.id.desc(),
        )
        return list(self.db.execute(stmt).unique().scalars().all())

    def update_task(self, task_id: int, dto: TaskUpdate, user_id: int) -> ManagementTask:
        task = self.get_task(task_id)
        if task.created_by_id != user_id:
            raise ForbiddenError("No tienes permiso para editar esta tarea")

        data = dto.model_dump(exclude_unset=True)
        for k, v in data.items():
            if v is None and k not in TASK_NULLABLE_FIELDS:
                continue
            setattr(task, k, v)

        self.db.commit()
        self.db.refresh(task)
        return task

    def delete_task(self, task_id: int, user_id: int) -> dict:
        task = self.get_task(task_id)
        if task.created_by_id != user_id:
            raise ForbiddenError("No tienes permiso para eliminar esta tarea")

        task.is_active = False
        self.db.commit()
        return {"success": True}

    # ═════════════════════════════════════════
    # ASIGNACIONES (acciones del docente)
    # ═════════════════════════════════════════
    def get_assignment(self, assignment_id: int) -> TaskAssignment:
        assignment = self.db.get(TaskAssignment, assignment_id)
        if assignment is None:
            raise NotFoundError("Asignación no encontrada")
        return assignment

    def _get_own_assignment(self, assignment_id: int, user_id: int) -> TaskAssignment:
        assignment = self.get_assignment(assignment_id)
        if assignment.assignee_id != user_id:
            raise ForbiddenError("No tienes permiso para esta acción")
        return assignment

    def start_task(self, assignment_id: int, user_id: int) -> TaskAssignment:
        assignment = self._get_own_assignment(assignment_id, user_id)
        if assignment.status != TaskAssignmentStatus.PENDING:
            raise InvalidStateTransitionError("La tarea ya fue iniciada")

        assignment.status = TaskAssignmentStatus.IN_PROGRESS
        assignment.started_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def submit_evidence(
        self,
        assignment_id: int,
        user_id: int,
        response_note: Optional[str] = None,
        file: Optional[UploadedFile] = None,
    ) -> TaskAssignment:
        assignment = self._get_own_assignment(assignment_id, user_id)
        if assignment.status not in SUBMITTABLE:
            raise InvalidStateTransitionError("No se puede enviar evidencia en este estado")

        if file is not None:
            validate_file(file, ALLOWED_EVIDENCE_TYPES, MAX_EVIDENCE_SIZE)
            task = assignment.task
            institution_id = task.institution_id

            self.quotas.check_limit(institution_id, QuotaCategory.EVIDENCE, file.size)

            path = evidence_path(institution_id, task.id, user_id, file_extension(file.filename), epoch_millis())
            self.storage.upload(self.bucket, path, file.content, file.content_type)

            assignment.evidence_url = self.storage.get_public_url(self.bucket, path)
            assignment.evidence_file_name = file.filename
            assignment.evidence_file_size = file.size
            assignment.evidence_mime_type = file.content_type

            self.quotas.adjust_usage(institution_id, QuotaCategory.EVIDENCE, file.size)
            logger.info(f"[Tareas] Evidencia de {file.size} bytes subida para asignación {assignment_id}")

        return self._mark_submitted(assignment, response_note)

    def mark_as_completed(self, assignment_id: int, user_id: int, response_note: Optional[str] = None) -> TaskAssignment:
        assignment = self._get_own_assignment(assignment_id, user_id)
        if assignment.status not in SUBMITTABLE:
            raise InvalidStateTransitionError("No se puede completar en este estado")

        return self._mark_submitted(assignment, response_note)

    def _mark_submitted(self, assignment: TaskAssignment, response_note: Optional[str]) -> TaskAssignment:
        assignment.status = TaskAssignmentStatus.SUBMITTED
        assignment.completed_at = datetime.utcnow()
        assignment.response_note = response_note
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def verify_task(
        self,
        assignment_id: int,
        verifier_id: int,
        status: TaskAssignmentStatus,
        verification_note: Optional[str] = None,
    ) -> TaskAssignment:
        assignment = self.get_assignment(assignment_id)

        if assignment.status != TaskAssignmentStatus.SUBMITTED:
            raise InvalidStateTransitionError("La tarea no está pendiente de verificación")

        if status not in VERDICTS:
            raise InvalidStateTransitionError("La verificación solo puede aprobar o rechazar")

        assignment.status = TaskAssignmentStatus(status)
        assignment.verified_by_id = verifier_id
        assignment.verified_at = datetime.utcnow()
        assignment.verification_note = verification_note
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"[Tareas] Asignación {assignment_id} verificada como {assignment.status.value} por {verifier_id}")
        return assignment

    # ═════════════════════════════════════════
    # CONSULTAS
    # ═════════════════════════════════════════
    def get_pending_verifications(self, institution_id: int, verifier_id: int) -> list[TaskAssignment]:
        """Entregas pendientes de las tareas que creó `verifier_id`."""
        stmt = (
            select(TaskAssignment)
            .join(TaskAssignment.task)
            .where(TaskAssignment.status == TaskAssignmentStatus.SUBMITTED)
            .where(ManagementTask.institution_id == institution_id)
            .where(ManagementTask.is_active.is_(True))
            .where(ManagementTask.created_by_id == verifier_id)
            .order_by(TaskAssignment.completed_at.asc(), TaskAssignment.id.asc())
        )
        return list(self.db.execute(stmt).unique().scalars().all())

    def get_my_tasks(self, user_id: int, status: Optional[TaskAssignmentStatus] = None) -> list[TaskAssignment]:
        stmt = (
            select(TaskAssignment)
            .join(TaskAssignment.task)
            .where(TaskAssignment.assignee_id == user_id)
            .where(ManagementTask.is_active.is_(True))
        )
        if status:
            stmt = stmt.where(TaskAssignment.status == status)

        stmt = stmt.order_by(
            enum_order(TaskAssignment.status, TaskAssignmentStatus).asc(),
            enum_order(ManagementTask.priority, TaskPriority).desc(),
            ManagementTask.due_date.asc().nulls_last(),
            TaskAssignment.id.asc(),
        )
        return list(self.db.execute(stmt).unique().scalars().all())

    def get_my_pending_count(self, user_id: int) -> int:
        stmt = (
            select(func.count(TaskAssignment.id))
            .join(TaskAssignment.task)
            .where(TaskAssignment.assignee_id == user_id)
            .where(TaskAssignment.status.in_(SUBMITTABLE))
            .where(ManagementTask.is_active.is_(True))
        )
        return int(self.db.execute(stmt).scalar_one())

    def get_enums(self) -> dict:
        return {
            "areas": as_options(AREA_LABELS),
            "priorities": as_options(PRIORITY_LABELS),
            "categories": as_options(TASK_CATEGORY_LABELS),
            "statuses": as_options(STATUS_LABELS),
        }
