from enum import Enum


class Capability(str, Enum):
    # Tasks
    TASK_CREATE = "task.create"
    TASK_EDIT_ANY = "task.edit_any"
    TASK_EDIT_ASSIGNED = "task.edit_assigned"
    TASK_VIEW_PRIVATE = "task.view_private"
    TASK_ASSIGN = "task.assign"
    TASK_COMMENT = "task.comment"

    # Vendors
    VENDOR_VIEW = "vendor.view"
    VENDOR_MANAGE = "vendor.manage"

    # Budget
    QUOTE_VIEW = "quote.view"
    QUOTE_MANAGE = "quote.manage"
    PAYMENT_CREATE = "payment.create"
    PAYMENT_APPROVE = "payment.approve"
    PAYMENT_VIEW_ALL = "payment.view_all"
    PAYMENT_VIEW_OWN = "payment.view_own"
