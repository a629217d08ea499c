"""Role classifier: pure predicates over a user's wedding role."""
from app.db.enums import UserRole

COUPLE_ROLES = frozenset({UserRole.bride, UserRole.groom})
PARENT_ROLES = frozenset({UserRole.bride_parent, UserRole.groom_parent})
DASHBOARD_ROLES = frozenset(UserRole) - {UserRole.vendor}


def is_couple(role: UserRole) -> bool:
    """Bride or groom. Bypasses the capability table entirely."""
    return role in COUPLE_ROLES


def is_planner(role: UserRole) -> bool:
    return role == UserRole.planner


def is_parent(role: UserRole) -> bool:
    return role in PARENT_ROLES


def is_family_helper(role: UserRole) -> bool:
    return role == UserRole.family_helper


def is_vendor(role: UserRole) -> bool:
    return role == UserRole.vendor


def is_dashboard_role(role: UserRole) -> bool:
    """Roles that get the main planning dashboard rather than the vendor portal."""
    return role in DASHBOARD_ROLES
