"""
Payment endpoints.
Listing is scoped by ``can_view_payments``; vendors never see the full ledger.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import budget_logger
from app.db.database import get_db
from app.db.enums import PaymentMethod
from app.db.models import Payment, VendorProfile, VendorQuote
from app.permissions.budget import (
    can_approve_payments,
    can_create_payments,
    can_view_payments,
    payment_scope,
)
from app.permissions.context import ActorContext
from app.permissions.dependencies import get_actor, get_wedding_policy
from app.permissions.guards import require
from app.permissions.service import WeddingPolicy

router = APIRouter()


class CreatePaymentRequest(BaseModel):
    vendor_id: Optional[int] = None
    quote_id: Optional[int] = None
    amount: float = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    paid_at: Optional[datetime] = None
    method: PaymentMethod = PaymentMethod.other
    note: Optional[str] = Field(default=None, max_length=1000)


def serialize_payment(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "vendor_id": payment.vendor_id,
        "quote_id": payment.quote_id,
        "amount": float(payment.amount),
        "currency": payment.currency,
        "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
        "method": payment.method.value,
        "note": payment.note,
        "is_approved": bool(payment.is_approved),
        "created_by_user_id": payment.created_by_user_id,
    }


@router.get("/")
async def list_payments(
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    visibility = can_view_payments(actor, policy)
    require(visibility.any, actor, "payment.view", "You don't have permission to view payments")

    result = await db.execute(
        select(Payment)
        .where(Payment.wedding_id == policy.wedding_id, payment_scope(actor, visibility))
        .order_by(Payment.paid_at.desc(), Payment.id.desc())
    )
    return [serialize_payment(p) for p in result.scalars().all()]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_payment(
    request: CreatePaymentRequest,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    require(can_create_payments(actor, policy), actor, "payment.create", "You don't have permission to create payments")

    vendor_id = request.vendor_id
    if vendor_id is not None:
        vendor = await db.execute(
            select(VendorProfile.id).where(VendorProfile.id == vendor_id, VendorProfile.wedding_id == policy.wedding_id)
        )
        if vendor.scalar_one_or_none() is None:
            raise HTTPException(status_code=404, detail="Vendor not found")

    if request.quote_id is not None:
        result = await db.execute(
            select(VendorQuote).where(VendorQuote.id == request.quote_id, VendorQuote.wedding_id == policy.wedding_id)
        )
        quote = result.scalar_one_or_none()
        if quote is None:
            raise HTTPException(status_code=404, detail="Quote not found")
        if vendor_id is not None and quote.vendor_id != vendor_id:
            raise HTTPException(status_code=400, detail="Quote vendor does not match specified vendor")
        vendor_id = quote.vendor_id

    payment = Payment(
        wedding_id=policy.wedding_id,
        vendor_id=vendor_id,
        quote_id=request.quote_id,
        amount=Decimal(str(request.amount)),
        currency=request.currency.upper(),
        paid_at=request.paid_at or datetime.now(timezone.utc),
        method=request.method,
        note=request.note,
        is_approved=False,
        created_by_user_id=actor.user_id,
    )
    db.add(payment)
    await db.flush()
    budget_logger.info("payment recorded", payment_id=payment.id, vendor_id=vendor_id, user_id=actor.user_id)
    return serialize_payment(payment)


@router.post("/{payment_id}/approve")
async def approve_payment(
    payment_id: int,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    require(can_approve_payments(actor, policy), actor, "payment.approve", "You don't have permission to approve payments", payment_id)

    result = await db.execute(
        select(Payment).where(Payment.id == payment_id, Payment.wedding_id == policy.wedding_id)
    )
    payment = result.scalar_one_or_none()
    if payment is None:
        raise HTTPException(status_code=404, detail="Payment not found")

    payment.is_approved = True
    payment.approved_by_user_id = actor.user_id
    await db.flush()
    budget_logger.info("payment approved", payment_id=payment.id, user_id=actor.user_id)
    return serialize_payment(payment)
