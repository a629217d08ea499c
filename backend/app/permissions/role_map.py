from types import MappingProxyType

from app.db.enums import UserRole
from .constants import Capability as C


def _frozen(table: dict) -> MappingProxyType:
    return MappingProxyType({role: MappingProxyType(caps) for role, caps in table.items()})


# Couple roles are absent on purpose: they never consult this table.
DEFAULT_CAPABILITIES = _frozen({
    UserRole.planner: {
        C.TASK_CREATE: True,
        C.TASK_EDIT_ANY: True,
        C.TASK_EDIT_ASSIGNED: True,
        C.TASK_VIEW_PRIVATE: False,
        C.TASK_ASSIGN: True,
        C.TASK_COMMENT: True,
        C.VENDOR_VIEW: True,
        C.VENDOR_MANAGE: True,
        C.QUOTE_VIEW: True,
        C.QUOTE_MANAGE: True,
        C.PAYMENT_CREATE: True,
        C.PAYMENT_APPROVE: False,
        C.PAYMENT_VIEW_ALL: True,
        C.PAYMENT_VIEW_OWN: True,
    },
    UserRole.bride_parent: {
        C.TASK_CREATE: True,
        C.TASK_EDIT_ANY: False,
        C.TASK_EDIT_ASSIGNED: True,
        C.TASK_VIEW_PRIVATE: False,
        C.TASK_ASSIGN: False,
        C.TASK_COMMENT: True,
        C.VENDOR_VIEW: True,
        C.VENDOR_MANAGE: False,
        C.QUOTE_VIEW: True,
        C.QUOTE_MANAGE: False,
        C.PAYMENT_CREATE: False,
        C.PAYMENT_APPROVE: False,
        C.PAYMENT_VIEW_ALL: False,
        C.PAYMENT_VIEW_OWN: True,
    },
    UserRole.groom_parent: {
        C.TASK_CREATE: True,
        C.TASK_EDIT_ANY: False,
        C.TASK_EDIT_ASSIGNED: True,
        C.TASK_VIEW_PRIVATE: False,
        C.TASK_ASSIGN: False,
        C.TASK_COMMENT: True,
        C.VENDOR_VIEW: True,
        C.VENDOR_MANAGE: False,
        C.QUOTE_VIEW: True,
        C.QUOTE_MANAGE: False,
        C.PAYMENT_CREATE: False,
        C.PAYMENT_APPROVE: False,
        C.PAYMENT_VIEW_ALL: False,
        C.PAYMENT_VIEW_OWN: True,
    },
    UserRole.family_helper: {
        C.TASK_CREATE: True,
        C.TASK_EDIT_ANY: False,
        C.TASK_EDIT_ASSIGNED: True,
        C.TASK_VIEW_PRIVATE: False,
        C.TASK_ASSIGN: False,
        C.TASK_COMMENT: True,
        C.VENDOR_VIEW: True,
        C.VENDOR_MANAGE: False,
        C.QUOTE_VIEW: False,
        C.QUOTE_MANAGE: False,
        C.PAYMENT_CREATE: False,
        C.PAYMENT_APPROVE: False,
        C.PAYMENT_VIEW_ALL: False,
        C.PAYMENT_VIEW_OWN: False,
    },
    UserRole.vendor: {
        C.TASK_CREATE: False,
        C.TASK_EDIT_ANY: False,
        C.TASK_EDIT_ASSIGNED: True,
        C.TASK_VIEW_PRIVATE: False,
        C.TASK_ASSIGN: False,
        C.TASK_COMMENT: True,
        C.VENDOR_VIEW: False,  # own profile only, handled by the caller
        C.VENDOR_MANAGE: False,
        C.QUOTE_VIEW: True,
        C.QUOTE_MANAGE: False,
        C.PAYMENT_CREATE: False,
        C.PAYMENT_APPROVE: False,
        C.PAYMENT_VIEW_ALL: False,
        C.PAYMENT_VIEW_OWN: True,
    },
})
