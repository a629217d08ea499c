"""
Task API Endpoints

Single-record routes ask the visibility decision procedure; the list route
applies the equivalent filter inside the query.
"""
from datetime import date, datetime
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.db.enums import TaskPriority, TaskStatus, TaskVisibility
from app.db.models import Task, TaskActivity, TaskComment, VendorProfile
from app.permissions.constants import Capability
from app.permissions.context import ActorContext
from app.permissions.dependencies import get_actor, get_wedding_policy
from app.permissions.guards import require
from app.permissions.service import WeddingPolicy, has_permission
from app.permissions.task_visibility import (
    can_comment_on_task,
    can_delete_task,
    can_edit_task,
    can_manage_task_acl,
    can_view_task,
    member_ids,
)
from app.services.tasks import (
    ACTIVITY_COMMENTED,
    ACTIVITY_CREATED,
    activity_action,
    apply_task_update,
    build_task,
    get_task,
    list_visible_tasks,
    record_activity,
)
from app.services.json_fields import load_json

router = APIRouter()

DueDate = Optional[Union[datetime, date]]


class CreateTaskRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: TaskStatus = TaskStatus.todo
    priority: TaskPriority = TaskPriority.medium
    due_date: DueDate = None
    tags: List[str] = []
    visibility: TaskVisibility = TaskVisibility.internal_team
    vendor_id: Optional[int] = None
    assigned_to_user_id: Optional[int] = None
    watcher_user_ids: List[int] = []
    allowed_user_ids: List[int] = []
    blocked_user_ids: List[int] = []


class UpdateTaskRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: DueDate = None
    tags: Optional[List[str]] = None
    visibility: Optional[TaskVisibility] = None
    vendor_id: Optional[int] = None
    assigned_to_user_id: Optional[int] = None
    watcher_user_ids: Optional[List[int]] = None
    allowed_user_ids: Optional[List[int]] = None
    blocked_user_ids: Optional[List[int]] = None


class CommentRequest(BaseModel):
    text: str = Field(min_length=1, max_length=5000)


def _iso(value):
    return value.isoformat() if value else None


def serialize_task(task: Task, actor: ActorContext) -> dict:
    data = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "priority": task.priority.value,
        "due_date": _iso(task.due_date),
        "tags": load_json(task.tags, []),
        "visibility": task.visibility.value,
        "vendor_id": task.vendor_id,
        "assigned_to_user_id": task.assigned_to_user_id,
        "created_by_user_id": task.created_by_user_id,
        "watcher_user_ids": sorted(member_ids(task.watchers)),
        "created_at": _iso(task.created_at),
    }
    # ACL lists are only shown to the people who manage them
    if can_manage_task_acl(actor):
        data["allowed_user_ids"] = sorted(member_ids(task.allowed_users))
        data["blocked_user_ids"] = sorted(member_ids(task.blocked_users))
    return data


def serialize_comment(comment: TaskComment) -> dict:
    return {
        "id": comment.id,
        "task_id": comment.task_id,
        "author_user_id": comment.author_user_id,
        "text": comment.text,
        "created_at": _iso(comment.created_at),
    }


async def _task_or_404(db: AsyncSession, task_id: int, policy: WeddingPolicy) -> Task:
    task = await get_task(db, task_id, policy.wedding_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


async def _check_vendor(db: AsyncSession, vendor_id: Optional[int], wedding_id: int) -> None:
    if vendor_id is None:
        return
    result = await db.execute(
        select(VendorProfile.id).where(VendorProfile.id == vendor_id, VendorProfile.wedding_id == wedding_id)
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Vendor not found")


@router.get("/")
async def list_tasks(
    status_filter: List[TaskStatus] = Query(default=[], alias="status"),
    priority: List[TaskPriority] = Query(default=[]),
    visibility: List[TaskVisibility] = Query(default=[]),
    assigned_to_user_id: Optional[int] = Query(None),
    vendor_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    tasks = await list_visible_tasks(
        db,
        actor,
        policy,
        statuses=status_filter,
        priorities=priority,
        visibilities=visibility,
        assigned_to_user_id=assigned_to_user_id,
        vendor_id=vendor_id,
        search=search,
    )
    return [serialize_task(t, actor) for t in tasks]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_task(
    request: CreateTaskRequest,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    require(
        has_permission(actor.user_id, actor.role, policy, Capability.TASK_CREATE),
        actor, Capability.TASK_CREATE.value, "You don't have permission to create tasks",
    )
    if request.assigned_to_user_id is not None:
        require(
            has_permission(actor.user_id, actor.role, policy, Capability.TASK_ASSIGN),
            actor, Capability.TASK_ASSIGN.value, "You don't have permission to assign tasks",
        )
    await _check_vendor(db, request.vendor_id, policy.wedding_id)

    task = build_task(policy.wedding_id, actor.user_id, request.model_dump(), with_acl=can_manage_task_acl(actor))
    db.add(task)
    await db.flush()
    await record_activity(db, task.id, actor.user_id, ACTIVITY_CREATED, {"title": task.title})

    task = await get_task(db, task.id, policy.wedding_id)
    return serialize_task(task, actor)


@router.get("/{task_id}")
async def get_task_detail(
    task_id: int,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    task = await _task_or_404(db, task_id, policy)
    require(can_view_task(task, actor, policy), actor, "task.view", "You don't have permission to view this task", task.id)
    return serialize_task(task, actor)


@router.patch("/{task_id}")
async def update_task(
    task_id: int,
    request: UpdateTaskRequest,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    task = await _task_or_404(db, task_id, policy)
    require(can_edit_task(task, actor, policy), actor, "task.edit", "You don't have permission to edit this task", task.id)

    data = request.model_dump(exclude_unset=True)
    if "assigned_to_user_id" in data and data["assigned_to_user_id"] != task.assigned_to_user_id:
        require(
            has_permission(actor.user_id, actor.role, policy, Capability.TASK_ASSIGN),
            actor, Capability.TASK_ASSIGN.value, "You don't have permission to assign tasks", task.id,
        )
    if "vendor_id" in data:
        await _check_vendor(db, data["vendor_id"], policy.wedding_id)

    changes = apply_task_update(task, data, with_acl=can_manage_task_acl(actor))
    await db.flush()
    await record_activity(
        db, task.id, actor.user_id, activity_action(changes),
        changes or {"fields": sorted(data)},
    )

    task = await get_task(db, task.id, policy.wedding_id)
    return serialize_task(task, actor)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    task = await _task_or_404(db, task_id, policy)
    require(can_delete_task(task, actor, policy), actor, "task.delete", "You don't have permission to delete this task", task.id)

    await db.execute(delete(TaskComment).where(TaskComment.task_id == task.id))
    await db.execute(delete(TaskActivity).where(TaskActivity.task_id == task.id))
    await db.delete(task)
    await db.flush()
    return {"success": True}


@router.get("/{task_id}/comments")
async def list_comments(
    task_id: int,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    task = await _task_or_404(db, task_id, policy)
    require(can_view_task(task, actor, policy), actor, "task.view", "You don't have permission to view this task", task.id)

    result = await db.execute(
        select(TaskComment)
        .where(TaskComment.task_id == task.id)
        .order_by(TaskComment.created_at.asc(), TaskComment.id.asc())
    )
    return [serialize_comment(c) for c in result.scalars().all()]


@router.post("/{task_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    task_id: int,
    request: CommentRequest,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    task = await _task_or_404(db, task_id, policy)
    require(
        can_comment_on_task(task, actor, policy),
        actor, Capability.TASK_COMMENT.value, "You don't have permission to comment on this task", task.id,
    )

    comment = TaskComment(task_id=task.id, author_user_id=actor.user_id, text=request.text)
    db.add(comment)
    await db.flush()
    await db.refresh(comment)
    await record_activity(db, task.id, actor.user_id, ACTIVITY_COMMENTED, {"preview": request.text[:100]})
    return serialize_comment(comment)
