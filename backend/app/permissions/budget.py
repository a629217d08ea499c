"""Quote and payment visibility, layered on the capability check."""
from typing import NamedTuple

from sqlalchemy import false, or_, true

from app.db.models import Payment, VendorQuote

from .constants import Capability
from .context import ActorContext
from .roles import is_vendor
from .service import WeddingPolicy, has_permission


class PaymentVisibility(NamedTuple):
    view_all: bool
    view_own: bool

    @property
    def any(self) -> bool:
        return self.view_all or self.view_own


def can_view_quotes(actor: ActorContext, policy: WeddingPolicy) -> bool:
    # Vendors always see their own quotes; listing is scoped by the caller
    if is_vendor(actor.role) and actor.has_vendor_profile:
        return True
    return has_permission(actor.user_id, actor.role, policy, Capability.QUOTE_VIEW)


def can_manage_quotes(actor: ActorContext, policy: WeddingPolicy) -> bool:
    return has_permission(actor.user_id, actor.role, policy, Capability.QUOTE_MANAGE)


def can_create_payments(actor: ActorContext, policy: WeddingPolicy) -> bool:
    return has_permission(actor.user_id, actor.role, policy, Capability.PAYMENT_CREATE)


def can_approve_payments(actor: ActorContext, policy: WeddingPolicy) -> bool:
    return has_permission(actor.user_id, actor.role, policy, Capability.PAYMENT_APPROVE)


def can_view_payments(actor: ActorContext, policy: WeddingPolicy) -> PaymentVisibility:
    view_all = has_permission(actor.user_id, actor.role, policy, Capability.PAYMENT_VIEW_ALL)
    view_own = has_permission(actor.user_id, actor.role, policy, Capability.PAYMENT_VIEW_OWN)

    # Never the full ledger for a vendor, whatever the policy says
    if is_vendor(actor.role):
        return PaymentVisibility(view_all=False, view_own=view_own and actor.has_vendor_profile)

    return PaymentVisibility(view_all=view_all, view_own=view_own)


def quote_scope(actor: ActorContext):
    """Extra WHERE clause for quote listings: vendors only ever see their own."""
    if is_vendor(actor.role):
        if not actor.has_vendor_profile:
            return false()
        return VendorQuote.vendor_id == actor.vendor_profile_id
    return true()


def payment_scope(actor: ActorContext, visibility: PaymentVisibility):
    """Extra WHERE clause for payment listings.

    ``view_all`` sees the whole ledger. ``view_own`` means payments to the
    actor's vendor profile for vendors, and payments the actor recorded for
    everyone else.
    """
    if visibility.view_all and not is_vendor(actor.role):
        return true()
    if not visibility.view_own:
        return false()
    if is_vendor(actor.role):
        return Payment.vendor_id == actor.vendor_profile_id
    if actor.has_vendor_profile:
        return or_(Payment.vendor_id == actor.vendor_profile_id, Payment.created_by_user_id == actor.user_id)
    return Payment.created_by_user_id == actor.user_id
