import enum


class UserRole(str, enum.Enum):
    bride = "BRIDE"
    groom = "GROOM"
    planner = "PLANNER"
    bride_parent = "BRIDE_PARENT"
    groom_parent = "GROOM_PARENT"
    family_helper = "FAMILY_HELPER"
    vendor = "VENDOR"


class TaskVisibility(str, enum.Enum):
    private = "PRIVATE"
    internal_team = "INTERNAL_TEAM"
    parents = "PARENTS"
    vendors = "VENDORS"
    everyone_internal = "EVERYONE_INTERNAL"


class TaskStatus(str, enum.Enum):
    todo = "TODO"
    in_progress = "IN_PROGRESS"
    blocked = "BLOCKED"
    done = "DONE"
    archived = "ARCHIVED"


class TaskPriority(str, enum.Enum):
    low = "LOW"
    medium = "MEDIUM"
    high = "HIGH"
    critical = "CRITICAL"


# Ordering used when listing tasks (higher first)
PRIORITY_RANK = {
    TaskPriority.low: 0,
    TaskPriority.medium: 1,
    TaskPriority.high: 2,
    TaskPriority.critical: 3,
}


class QuoteStatus(str, enum.Enum):
    draft = "DRAFT"
    sent = "SENT"
    accepted = "ACCEPTED"
    rejected = "REJECTED"


class PaymentMethod(str, enum.Enum):
    cash = "CASH"
    zelle = "ZELLE"
    venmo = "VENMO"
    bank = "BANK"
    card = "CARD"
    other = "OTHER"
