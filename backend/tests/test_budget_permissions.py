import pytest

from app.db.enums import UserRole
from app.permissions.budget import (
    PaymentVisibility,
    can_approve_payments,
    can_create_payments,
    can_manage_quotes,
    can_view_payments,
    can_view_quotes,
    payment_scope,
    quote_scope,
)
from app.permissions.constants import Capability
from app.permissions.context import ActorContext
from app.permissions.service import WeddingPolicy

DEFAULTS = WeddingPolicy(wedding_id=1)

BRIDE = ActorContext(user_id=1, role=UserRole.bride)
PLANNER = ActorContext(user_id=3, role=UserRole.planner)
PARENT = ActorContext(user_id=4, role=UserRole.groom_parent)
HELPER = ActorContext(user_id=6, role=UserRole.family_helper)
VENDOR = ActorContext(user_id=7, role=UserRole.vendor, vendor_profile_id=101)
VENDOR_NO_PROFILE = ActorContext(user_id=8, role=UserRole.vendor)


@pytest.mark.parametrize(
    "actor,expected",
    [(BRIDE, True), (PLANNER, True), (PARENT, True), (HELPER, False), (VENDOR, True)],
)
def test_quote_view_defaults(actor, expected):
    assert can_view_quotes(actor, DEFAULTS) is expected


def test_vendor_with_profile_sees_quotes_even_if_revoked():
    policy = WeddingPolicy(wedding_id=1, overrides={UserRole.vendor: {Capability.QUOTE_VIEW: False}})
    assert can_view_quotes(VENDOR, policy) is True
    assert can_view_quotes(VENDOR_NO_PROFILE, policy) is False


def test_management_is_a_capability_passthrough():
    assert can_manage_quotes(PLANNER, DEFAULTS) is True
    assert can_manage_quotes(PARENT, DEFAULTS) is False
    assert can_create_payments(PLANNER, DEFAULTS) is True
    assert can_create_payments(VENDOR, DEFAULTS) is False
    assert can_approve_payments(PLANNER, DEFAULTS) is False
    assert can_approve_payments(BRIDE, DEFAULTS) is True


def test_payment_visibility_defaults():
    assert can_view_payments(BRIDE, DEFAULTS) == PaymentVisibility(view_all=True, view_own=True)
    assert can_view_payments(PLANNER, DEFAULTS) == PaymentVisibility(view_all=True, view_own=True)
    assert can_view_payments(PARENT, DEFAULTS) == PaymentVisibility(view_all=False, view_own=True)
    assert can_view_payments(HELPER, DEFAULTS).any is False


def test_vendor_never_gets_the_full_ledger():
    misconfigured = WeddingPolicy(wedding_id=1, overrides={UserRole.vendor: {Capability.PAYMENT_VIEW_ALL: True}})
    assert can_view_payments(VENDOR, misconfigured) == PaymentVisibility(view_all=False, view_own=True)
    assert can_view_payments(VENDOR_NO_PROFILE, misconfigured) == PaymentVisibility(view_all=False, view_own=False)


def test_quote_scope_sql():
    assert str(quote_scope(PLANNER)) == "true"
    assert str(quote_scope(VENDOR_NO_PROFILE)) == "false"
    assert "vendor_quotes.vendor_id" in str(quote_scope(VENDOR))


def test_payment_scope_sql():
    assert str(payment_scope(PLANNER, can_view_payments(PLANNER, DEFAULTS))) == "true"
    assert str(payment_scope(HELPER, can_view_payments(HELPER, DEFAULTS))) == "false"

    vendor_sql = str(payment_scope(VENDOR, can_view_payments(VENDOR, DEFAULTS)))
    assert "payments.vendor_id" in vendor_sql
    assert "created_by_user_id" not in vendor_sql

    parent_sql = str(payment_scope(PARENT, can_view_payments(PARENT, DEFAULTS)))
    assert "payments.created_by_user_id" in parent_sql
