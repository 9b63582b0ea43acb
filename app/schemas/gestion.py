# app/schemas/gestion.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import ManagementArea, TaskAssignmentStatus, TaskCategory, TaskPriority
from app.schemas.usuarios import UsuarioResumen


# -------------------------
# Líderes
# -------------------------
class LeaderCreate(BaseModel):
    institution_id: int
    user_id: int
    area: ManagementArea


class LeaderOut(BaseModel):
    id: int
    institution_id: int
    user_id: int
    area: ManagementArea
    assigned_by_id: int
    is_active: bool
    user: Optional[UsuarioResumen] = None
    assigned_by: Optional[UsuarioResumen] = None

    class Config:
        from_attributes = True


# -------------------------
# Tareas
# -------------------------
class TaskCreate(BaseModel):
    institution_id: int
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: TaskCategory
    priority: TaskPriority = TaskPriority.NORMAL
    due_date: Optional[datetime] = None
    assignee_ids: List[int] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class TaskBrief(BaseModel):
    id: int
    institution_id: int
    title: str
    description: Optional[str] = None
    category: TaskCategory
    priority: TaskPriority
    due_date: Optional[datetime] = None
    created_by_id: int
    leader_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None
    created_by: Optional[UsuarioResumen] = None

    class Config:
        from_attributes = True


class AssignmentOut(BaseModel):
    id: int
    task_id: int
    assignee_id: int
    status: TaskAssignmentStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    response_note: Optional[str] = None
    evidence_url: Optional[str] = None
    evidence_file_name: Optional[str] = None
    evidence_file_size: Optional[int] = None
    evidence_mime_type: Optional[str] = None
    verified_by_id: Optional[int] = None
    verified_at: Optional[datetime] = None
    verification_note: Optional[str] = None
    assignee: Optional[UsuarioResumen] = None
    verified_by: Optional[UsuarioResumen] = None

    class Config:
        from_attributes = True


class AssignmentWithTaskOut(AssignmentOut):
    task: TaskBrief


class TaskOut(TaskBrief):
    assignments: List[AssignmentOut] = []


# -------------------------
# Acciones sobre asignaciones
# -------------------------
class CompleteIn(BaseModel):
    response_note: Optional[str] = None


class VerifyIn(BaseModel):
    # Solo APPROVED o REJECTED; el servicio rechaza cualquier otro
    status: TaskAssignmentStatus
    verification_note: Optional[str] = None


class PendingCountOut(BaseModel):
    count: int


class OptionOut(BaseModel):
    value: str
    label: str


class EnumsOut(BaseModel):
    areas: List[OptionOut]
    priorities: List[OptionOut]
    categories: List[OptionOut]
    statuses: List[OptionOut]
