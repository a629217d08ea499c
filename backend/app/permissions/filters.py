"""
Listing filter for tasks.

``build_visibility_filter`` returns a clause tree that can be evaluated
against a loaded task (``matches``) or rendered as a SQLAlchemy WHERE
expression (``to_sql``). Both readings accept exactly the tasks
``can_view_task`` accepts, so list endpoints apply the filter in the query
and never re-check rows one by one.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from sqlalchemy import and_, false, or_, true

from app.db.enums import TaskVisibility
from app.db.models import Task, TaskAllowedUser, TaskBlockedUser, VendorProfile
from .constants import Capability
from .context import ActorContext
from .roles import is_couple, is_vendor
from .service import WeddingPolicy, has_permission
from .task_visibility import VENDOR_VISIBLE, VISIBILITY_AUDIENCE, is_linked_vendor, member_ids


class Clause:
    def matches(self, task) -> bool:
        raise NotImplementedError

    def to_sql(self):
        raise NotImplementedError


@dataclass(frozen=True)
class InWedding(Clause):
    wedding_id: int

    def matches(self, task) -> bool:
        return task.wedding_id == self.wedding_id

    def to_sql(self):
        return Task.wedding_id == self.wedding_id


@dataclass(frozen=True)
class NotBlocked(Clause):
    user_id: int

    def matches(self, task) -> bool:
        return self.user_id not in member_ids(task.blocked_users)

    def to_sql(self):
        return ~Task.blocked_users.any(TaskBlockedUser.user_id == self.user_id)


@dataclass(frozen=True)
class ExplicitlyAllowed(Clause):
    user_id: int

    def matches(self, task) -> bool:
        return self.user_id in member_ids(task.allowed_users)

    def to_sql(self):
        return Task.allowed_users.any(TaskAllowedUser.user_id == self.user_id)


@dataclass(frozen=True)
class VisibilityIn(Clause):
    buckets: FrozenSet[TaskVisibility]

    def matches(self, task) -> bool:
        return task.visibility in self.buckets

    def to_sql(self):
        if not self.buckets:
            return false()
        return Task.visibility.in_(sorted(self.buckets, key=lambda v: v.value))


@dataclass(frozen=True)
class LinkedVendor(Clause):
    user_id: int
    vendor_profile_id: Optional[int] = None

    def matches(self, task) -> bool:
        return is_linked_vendor(task, self.user_id, self.vendor_profile_id)

    def to_sql(self):
        by_login = Task.vendor.has(VendorProfile.user_id == self.user_id)
        if self.vendor_profile_id is None:
            return by_login
        return or_(Task.vendor_id == self.vendor_profile_id, by_login)


@dataclass(frozen=True)
class AllOf(Clause):
    clauses: Tuple[Clause, ...]

    def matches(self, task) -> bool:
        return all(clause.matches(task) for clause in self.clauses)

    def to_sql(self):
        if not self.clauses:
            return true()
        return and_(*(clause.to_sql() for clause in self.clauses))


@dataclass(frozen=True)
class AnyOf(Clause):
    clauses: Tuple[Clause, ...]

    def matches(self, task) -> bool:
        return any(clause.matches(task) for clause in self.clauses)

    def to_sql(self):
        if not self.clauses:
            return false()
        return or_(*(clause.to_sql() for clause in self.clauses))


def _audience_buckets(actor: ActorContext) -> FrozenSet[TaskVisibility]:
    return frozenset(bucket for bucket, roles in VISIBILITY_AUDIENCE.items() if actor.role in roles)


def build_visibility_filter(actor: ActorContext, policy: WeddingPolicy) -> Clause:
    """Clause selecting the wedding's tasks that ``actor`` may view."""
    scope = (InWedding(policy.wedding_id), NotBlocked(actor.user_id))

    if is_couple(actor.role):
        return AllOf(scope)

    options = [ExplicitlyAllowed(actor.user_id)]

    if has_permission(actor.user_id, actor.role, policy, Capability.TASK_VIEW_PRIVATE):
        options.append(VisibilityIn(frozenset({TaskVisibility.private})))

    if is_vendor(actor.role):
        options.append(AllOf((
            VisibilityIn(VENDOR_VISIBLE),
            LinkedVendor(actor.user_id, actor.vendor_profile_id),
        )))
    else:
        buckets = _audience_buckets(actor)
        if buckets:
            options.append(VisibilityIn(buckets))

    return AllOf(scope + (AnyOf(tuple(options)),))
