"""
Task visibility decisions for a single, already-loaded task.

The task must have ``allowed_users``, ``blocked_users``, ``watchers`` and
``vendor`` loaded. Every function returns a plain bool and fails closed.
The listing filter in ``filters.py`` is built from the same audience tables
below and must stay equivalent to ``can_view_task``.
"""
from typing import Iterable, Optional, Set

from app.db.enums import TaskVisibility, UserRole
from .constants import Capability
from .context import ActorContext
from .roles import PARENT_ROLES, is_couple, is_vendor
from .service import WeddingPolicy, has_permission

# Non-vendor, non-couple roles that each bucket admits by default.
VISIBILITY_AUDIENCE = {
    TaskVisibility.internal_team: frozenset({UserRole.planner}),
    TaskVisibility.parents: frozenset({UserRole.planner}) | PARENT_ROLES,
    TaskVisibility.vendors: frozenset({UserRole.planner}),
    TaskVisibility.everyone_internal: frozenset({UserRole.planner, UserRole.family_helper}) | PARENT_ROLES,
}

# Buckets in which a vendor sees tasks linked to their own profile.
VENDOR_VISIBLE = frozenset({TaskVisibility.vendors, TaskVisibility.everyone_internal})


def member_ids(entries: Iterable) -> Set[int]:
    return {entry.user_id for entry in entries or ()}


def is_linked_vendor(task, user_id: int, vendor_profile_id: Optional[int]) -> bool:
    """The task's vendor is the actor's profile, or that profile's login is the actor."""
    if vendor_profile_id is not None and task.vendor_id == vendor_profile_id:
        return True
    vendor = task.vendor
    return vendor is not None and vendor.user_id is not None and vendor.user_id == user_id


def can_view_task(task, actor: ActorContext, policy: WeddingPolicy) -> bool:
    # 1. explicit block beats everything, the couple included
    if actor.user_id in member_ids(task.blocked_users):
        return False

    # 2. couple sees everything else
    if is_couple(actor.role):
        return True

    # 3. explicit grant
    explicitly_allowed = actor.user_id in member_ids(task.allowed_users)

    # 4. PRIVATE
    if task.visibility == TaskVisibility.private:
        return explicitly_allowed or has_permission(
            actor.user_id, actor.role, policy, Capability.TASK_VIEW_PRIVATE
        )

    # 5. vendors only see buckets open to vendors, and only their own tasks there
    if is_vendor(actor.role):
        if task.visibility not in VENDOR_VISIBLE:
            return explicitly_allowed
        return is_linked_vendor(task, actor.user_id, actor.vendor_profile_id) or explicitly_allowed

    # 6. bucket audience; an explicit grant still widens it
    audience = VISIBILITY_AUDIENCE.get(task.visibility)
    if audience is None:
        return explicitly_allowed
    return actor.role in audience or explicitly_allowed


def can_edit_task(task, actor: ActorContext, policy: WeddingPolicy) -> bool:
    if not can_view_task(task, actor, policy):
        return False

    if has_permission(actor.user_id, actor.role, policy, Capability.TASK_EDIT_ANY):
        return True

    if not has_permission(actor.user_id, actor.role, policy, Capability.TASK_EDIT_ASSIGNED):
        return False

    if task.assigned_to_user_id is not None and task.assigned_to_user_id == actor.user_id:
        return True
    if actor.user_id in member_ids(task.watchers):
        return True
    return (
        is_vendor(actor.role)
        and actor.vendor_profile_id is not None
        and task.vendor_id == actor.vendor_profile_id
    )


def can_comment_on_task(task, actor: ActorContext, policy: WeddingPolicy) -> bool:
    if not can_view_task(task, actor, policy):
        return False
    return has_permission(actor.user_id, actor.role, policy, Capability.TASK_COMMENT)


def can_delete_task(task, actor: ActorContext, policy: WeddingPolicy) -> bool:
    """Only the couple or the task's creator, and only for tasks they can see."""
    if not can_view_task(task, actor, policy):
        return False
    return is_couple(actor.role) or (
        task.created_by_user_id is not None and task.created_by_user_id == actor.user_id
    )


def can_manage_task_acl(actor: ActorContext) -> bool:
    """Allow/block lists are edited by the couple only."""
    return is_couple(actor.role)
