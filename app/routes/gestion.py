# app/routes/gestion.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.core.deps import (
    Principal,
    ensure_institution_access,
    get_task_service,
    read_upload,
    require_roles,
    resolve_institution_id,
)
from app.core.enums import RoleName, TaskAssignmentStatus, TaskCategory, TaskPriority
from app.core.exceptions import ForbiddenError
from app.core.roles import TASK_ADMIN_ROLES
from app.schemas.gestion import (
    AssignmentOut,
    AssignmentWithTaskOut,
    CompleteIn,
    EnumsOut,
    LeaderCreate,
    LeaderOut,
    PendingCountOut,
    TaskCreate,
    TaskOut,
    TaskUpdate,
    VerifyIn,
)
from app.services.gestion import ManagementTaskService

router = APIRouter(prefix="/management-tasks", tags=["Tareas de gestión"])

SUPERADMIN = RoleName.SUPERADMIN
ADMIN = RoleName.ADMIN_INSTITUTIONAL
COORDINADOR = RoleName.COORDINADOR
DOCENTE = RoleName.DOCENTE

cualquier_rol = require_roles(SUPERADMIN, ADMIN, COORDINADOR, DOCENTE)
directivos = require_roles(SUPERADMIN, ADMIN, COORDINADOR)


# -------------------------
# Líderes de gestión
# -------------------------
@router.post("/leaders", response_model=LeaderOut)
def crear_lider(
    payload: LeaderCreate,
    principal: Principal = Depends(directivos),
    service: ManagementTaskService = Depends(get_task_service),
):
    dto = payload.model_copy(update={"institution_id": resolve_institution_id(principal, payload.institution_id)})
    return service.create_leader(dto, principal.id)


@router.get("/leaders", response_model=list[LeaderOut])
def listar_lideres(
    institution_id: Optional[int] = None,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    return service.get_leaders(resolve_institution_id(principal, institution_id))


@router.delete("/leaders/{leader_id}")
def quitar_lider(
    leader_id: int,
    principal: Principal = Depends(directivos),
    service: ManagementTaskService = Depends(get_task_service),
):
    leader = service.get_leader(leader_id)
    ensure_institution_access(principal, leader.institution_id, "Líder no encontrado")
    return service.remove_leader(leader_id)


# -------------------------
# Tareas
# -------------------------
@router.post("", response_model=TaskOut)
def crear_tarea(
    payload: TaskCreate,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    dto = payload.model_copy(update={"institution_id": resolve_institution_id(principal, payload.institution_id)})

    # Un docente solo crea tareas si es líder de gestión
    if not principal.has_any(*TASK_ADMIN_ROLES):
        if not service.is_user_leader(principal.id, dto.institution_id):
            raise ForbiddenError("Solo los líderes de gestión pueden crear tareas")

    return service.create_task(dto, principal.id)


@router.get("", response_model=list[TaskOut])
def listar_tareas(
    institution_id: Optional[int] = None,
    status: Optional[TaskAssignmentStatus] = None,
    priority: Optional[TaskPriority] = None,
    category: Optional[TaskCategory] = None,
    created_by_id: Optional[int] = None,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    inst_id = resolve_institution_id(principal, institution_id)
    return service.get_tasks(inst_id, status=status, priority=priority, category=category, created_by_id=created_by_id)


@router.get("/my-tasks", response_model=list[AssignmentWithTaskOut])
def mis_tareas(
    status: Optional[TaskAssignmentStatus] = None,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    return service.get_my_tasks(principal.id, status)


@router.get("/my-pending-count", response_model=PendingCountOut)
def mis_pendientes(
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    return {"count": service.get_my_pending_count(principal.id)}


@router.get("/pending-verifications", response_model=list[AssignmentWithTaskOut])
def pendientes_de_verificar(
    institution_id: Optional[int] = None,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    inst_id = resolve_institution_id(principal, institution_id)
    return service.get_pending_verifications(inst_id, principal.id)


@router.get("/enums", response_model=EnumsOut)
def enums(
    _principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    return service.get_enums()


@router.get("/{task_id}", response_model=TaskOut)
def obtener_tarea(
    task_id: int,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    task = service.get_task(task_id)
    ensure_institution_access(principal, task.institution_id, "Tarea no encontrada")
    return task


@router.put("/{task_id}", response_model=TaskOut)
def actualizar_tarea(
    task_id: int,
    payload: TaskUpdate,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    return service.update_task(task_id, payload, principal.id)


@router.delete("/{task_id}")
def eliminar_tarea(
    task_id: int,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    return service.delete_task(task_id, principal.id)


# -------------------------
# Asignaciones (acciones del docente)
# -------------------------
@router.post("/assignments/{assignment_id}/start", response_model=AssignmentOut)
def iniciar(
    assignment_id: int,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    return service.start_task(assignment_id, principal.id)


@router.post("/assignments/{assignment_id}/submit", response_model=AssignmentOut)
def entregar_evidencia(
    assignment_id: int,
    response_note: Optional[str] = Form(None),
    evidence: Optional[UploadFile] = File(None),
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    return service.submit_evidence(assignment_id, principal.id, response_note, read_upload(evidence))


@router.post("/assignments/{assignment_id}/complete", response_model=AssignmentOut)
def completar(
    assignment_id: int,
    payload: Optional[CompleteIn] = None,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    note = payload.response_note if payload else None
    return service.mark_as_completed(assignment_id, principal.id, note)


@router.post("/assignments/{assignment_id}/verify", response_model=AssignmentOut)
def verificar(
    assignment_id: int,
    payload: VerifyIn,
    principal: Principal = Depends(cualquier_rol),
    service: ManagementTaskService = Depends(get_task_service),
):
    assignment = service.get_assignment(assignment_id)
    ensure_institution_access(principal, assignment.task.institution_id, "Asignación no encontrada")
    return service.verify_task(assignment_id, principal.id, payload.status, payload.verification_note)
