"""Vendor directory access, layered on the capability check."""
from app.db.models import VendorProfile

from .constants import Capability
from .context import ActorContext
from .roles import is_vendor
from .service import WeddingPolicy, has_permission


def can_view_vendors(actor: ActorContext, policy: WeddingPolicy) -> bool:
    # The directory belongs to the planning side; vendors only get their own profile
    if is_vendor(actor.role):
        return False
    return has_permission(actor.user_id, actor.role, policy, Capability.VENDOR_VIEW)


def can_view_vendor(vendor: VendorProfile, actor: ActorContext, policy: WeddingPolicy) -> bool:
    if is_vendor(actor.role):
        return actor.has_vendor_profile and vendor.id == actor.vendor_profile_id
    return can_view_vendors(actor, policy)


def can_manage_vendors(actor: ActorContext, policy: WeddingPolicy) -> bool:
    if is_vendor(actor.role):
        return False
    return has_permission(actor.user_id, actor.role, policy, Capability.VENDOR_MANAGE)
