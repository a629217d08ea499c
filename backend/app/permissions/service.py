from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from app.core.logging import permissions_logger
from app.db.enums import UserRole
from .constants import Capability
from .role_map import DEFAULT_CAPABILITIES
from .roles import is_couple

RoleCapabilities = Dict[Capability, bool]
CapabilityMatrix = Dict[UserRole, RoleCapabilities]


@dataclass(frozen=True)
class WeddingPolicy:
    """A wedding's capability overrides, merged over the defaults on read.

    The merge is per capability: overriding ``task.assign`` for the planner
    leaves every other planner default untouched.
    """
    wedding_id: int
    overrides: Mapping[UserRole, Mapping[Capability, bool]] = field(default_factory=dict)

    def effective(self, role: UserRole) -> RoleCapabilities:
        merged = dict(DEFAULT_CAPABILITIES.get(role, {}))
        merged.update(self.overrides.get(role, {}))
        return merged

    def matrix(self) -> CapabilityMatrix:
        return {role: self.effective(role) for role in DEFAULT_CAPABILITIES}


def parse_overrides(raw: Any) -> Dict[UserRole, RoleCapabilities]:
    """Normalise a JSON override document into typed overrides.

    Unknown roles or capabilities, couple roles and non-boolean values are
    dropped so a bad document can never grant more than the defaults do.
    """
    parsed: Dict[UserRole, RoleCapabilities] = {}
    if not isinstance(raw, Mapping):
        if raw:
            permissions_logger.warning("[PERMS] ignoring malformed policy document", kind=type(raw).__name__)
        return parsed

    for role_key, caps in raw.items():
        try:
            role = UserRole(role_key)
        except ValueError:
            permissions_logger.warning("[PERMS] ignoring unknown role in policy", role=role_key)
            continue
        if is_couple(role) or not isinstance(caps, Mapping):
            continue

        role_caps: RoleCapabilities = {}
        for cap_key, value in caps.items():
            try:
                capability = Capability(cap_key)
            except ValueError:
                permissions_logger.warning("[PERMS] ignoring unknown capability in policy", role=role.value, capability=cap_key)
                continue
            if isinstance(value, bool):
                role_caps[capability] = value
        if role_caps:
            parsed[role] = role_caps
    return parsed


def serialize_matrix(matrix: Mapping[UserRole, Mapping[Capability, bool]]) -> Dict[str, Dict[str, bool]]:
    """JSON-friendly view keyed by the enum values."""
    return {
        UserRole(role).value: {Capability(cap).value: bool(allowed) for cap, allowed in caps.items()}
        for role, caps in matrix.items()
    }


class PermissionService:
    """Resolve capabilities for an actor within a wedding."""

    @staticmethod
    def has_permission(
        actor_id: int,
        role: UserRole,
        policy: WeddingPolicy,
        capability: Capability,
    ) -> bool:
        """
        Couple roles always pass, before any table lookup.
        Everyone else gets the merged matrix value, defaulting to False.
        ``actor_id`` is not consulted yet; it keeps the signature in line
        with the record-level checks.
        """
        if is_couple(role):
            return True
        return policy.effective(role).get(capability, False) is True


permission_service = PermissionService()
has_permission = permission_service.has_permission
