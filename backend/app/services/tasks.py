"""
Task persistence helpers.

Tasks are always loaded with their ACL relations and vendor so the
visibility checks can run without further IO. Listing applies the
visibility filter inside the query.
"""
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.logging import tasks_logger
from app.db.enums import PRIORITY_RANK, TaskPriority, TaskStatus, TaskVisibility
from app.db.models import Task, TaskActivity, TaskAllowedUser, TaskBlockedUser, TaskWatcher
from app.permissions.context import ActorContext
from app.permissions.filters import build_visibility_filter
from app.permissions.service import WeddingPolicy
from app.services.json_fields import dump_json

ACTIVITY_CREATED = "created"
ACTIVITY_UPDATED = "updated"
ACTIVITY_STATUS_CHANGED = "status_changed"
ACTIVITY_ASSIGNED = "assigned"
ACTIVITY_COMMENTED = "commented"

_LOAD_OPTIONS = (
    selectinload(Task.allowed_users),
    selectinload(Task.blocked_users),
    selectinload(Task.watchers),
    selectinload(Task.vendor),
)

_PRIORITY_ORDER = case(
    *[(Task.priority == priority, rank) for priority, rank in PRIORITY_RANK.items()],
    else_=0,
)


def normalize_due_date(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raise ValueError(f"Unsupported due date: {value!r}")


async def get_task(db: AsyncSession, task_id: int, wedding_id: int) -> Optional[Task]:
    """Task with ACL relations loaded, or None if missing or in another wedding."""
    result = await db.execute(
        select(Task)
        .options(*_LOAD_OPTIONS)
        .where(Task.id == task_id, Task.wedding_id == wedding_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_visible_tasks(
    db: AsyncSession,
    actor: ActorContext,
    policy: WeddingPolicy,
    statuses: Sequence[TaskStatus] = (),
    priorities: Sequence[TaskPriority] = (),
    visibilities: Sequence[TaskVisibility] = (),
    assigned_to_user_id: Optional[int] = None,
    vendor_id: Optional[int] = None,
    search: Optional[str] = None,
) -> List[Task]:
    visibility_filter = build_visibility_filter(actor, policy)
    q = select(Task).options(*_LOAD_OPTIONS).where(visibility_filter.to_sql())

    if statuses:
        q = q.where(Task.status.in_(list(statuses)))
    if priorities:
        q = q.where(Task.priority.in_(list(priorities)))
    if visibilities:
        q = q.where(Task.visibility.in_(list(visibilities)))
    if assigned_to_user_id is not None:
        q = q.where(Task.assigned_to_user_id == assigned_to_user_id)
    if vendor_id is not None:
        q = q.where(Task.vendor_id == vendor_id)
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))

    q = q.order_by(_PRIORITY_ORDER.desc(), Task.due_date.asc(), Task.created_at.desc(), Task.id.desc())
    result = await db.execute(q)
    return list(result.scalars().all())


def sync_members(collection: list, model, user_ids: Iterable[int]) -> None:
    """Make an ACL collection hold exactly ``user_ids``, keeping unchanged rows."""
    wanted = list(dict.fromkeys(user_ids))
    for entry in list(collection):
        if entry.user_id not in wanted:
            collection.remove(entry)
    present = {entry.user_id for entry in collection}
    for user_id in wanted:
        if user_id not in present:
            collection.append(model(user_id=user_id))


def build_task(wedding_id: int, created_by_user_id: int, data: dict, with_acl: bool) -> Task:
    task = Task(
        wedding_id=wedding_id,
        title=data["title"],
        description=data.get("description"),
        status=data.get("status") or TaskStatus.todo,
        priority=data.get("priority") or TaskPriority.medium,
        due_date=normalize_due_date(data.get("due_date")),
        tags=dump_json(data.get("tags") or []),
        visibility=data.get("visibility") or TaskVisibility.internal_team,
        vendor_id=data.get("vendor_id"),
        assigned_to_user_id=data.get("assigned_to_user_id"),
        created_by_user_id=created_by_user_id,
    )
    sync_members(task.watchers, TaskWatcher, data.get("watcher_user_ids") or [])
    if with_acl:
        sync_members(task.allowed_users, TaskAllowedUser, data.get("allowed_user_ids") or [])
        sync_members(task.blocked_users, TaskBlockedUser, data.get("blocked_user_ids") or [])
    return task


_SCALAR_FIELDS = (
    "title", "description", "status", "priority", "visibility",
    "vendor_id", "assigned_to_user_id",
)
_REQUIRED_FIELDS = frozenset({"title", "status", "priority", "visibility"})


def apply_task_update(task: Task, data: dict, with_acl: bool) -> dict:
    """Apply a partial update; returns the tracked changes for the activity log."""
    changes = {}
    for name in ("status", "priority", "assigned_to_user_id"):
        if name in data and data[name] != getattr(task, name):
            if data[name] is None and name in _REQUIRED_FIELDS:
                continue
            before, after = getattr(task, name), data[name]
            changes[name] = {
                "from": getattr(before, "value", before),
                "to": getattr(after, "value", after),
            }

    for name in _SCALAR_FIELDS:
        if name not in data:
            continue
        if data[name] is None and name in _REQUIRED_FIELDS:
            continue
        setattr(task, name, data[name])
    if "due_date" in data:
        task.due_date = normalize_due_date(data["due_date"])
    if "tags" in data:
        task.tags = dump_json(data["tags"] or [])

    if data.get("watcher_user_ids") is not None:
        sync_members(task.watchers, TaskWatcher, data["watcher_user_ids"])
    if with_acl:
        if data.get("allowed_user_ids") is not None:
            sync_members(task.allowed_users, TaskAllowedUser, data["allowed_user_ids"])
        if data.get("blocked_user_ids") is not None:
            sync_members(task.blocked_users, TaskBlockedUser, data["blocked_user_ids"])
    return changes


def activity_action(changes: dict) -> str:
    if "status" in changes:
        return ACTIVITY_STATUS_CHANGED
    if "assigned_to_user_id" in changes:
        return ACTIVITY_ASSIGNED
    return ACTIVITY_UPDATED


async def record_activity(
    db: AsyncSession,
    task_id: int,
    user_id: Optional[int],
    action: str,
    details: Optional[dict] = None,
) -> TaskActivity:
    entry = TaskActivity(task_id=task_id, user_id=user_id, action=action, details=dump_json(details))
    db.add(entry)
    await db.flush()
    tasks_logger.info(f"task {action}", task_id=task_id, user_id=user_id)
    return entry
