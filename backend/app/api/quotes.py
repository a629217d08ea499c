"""
Vendor quote endpoints.
Vendors only ever see quotes for their own profile.
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.logging import budget_logger
from app.db.database import get_db
from app.db.enums import QuoteStatus
from app.db.models import VendorProfile, VendorQuote
from app.permissions.budget import can_manage_quotes, can_view_quotes, quote_scope
from app.permissions.context import ActorContext
from app.permissions.dependencies import get_actor, get_wedding_policy
from app.permissions.guards import require
from app.permissions.service import WeddingPolicy
from app.services.json_fields import dump_json, load_json

router = APIRouter()


class QuoteLineItem(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    amount: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)


class CreateQuoteRequest(BaseModel):
    vendor_id: int
    title: str = Field(min_length=1, max_length=200)
    amount_total: float = Field(ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    notes: Optional[str] = Field(default=None, max_length=5000)
    line_items: List[QuoteLineItem] = []
    status: QuoteStatus = QuoteStatus.draft


def serialize_quote(quote: VendorQuote) -> dict:
    total_paid = sum((p.amount for p in quote.payments), Decimal("0"))
    return {
        "id": quote.id,
        "vendor_id": quote.vendor_id,
        "title": quote.title,
        "amount_total": float(quote.amount_total),
        "currency": quote.currency,
        "notes": quote.notes,
        "line_items": load_json(quote.line_items, []),
        "status": quote.status.value,
        "created_by_user_id": quote.created_by_user_id,
        "total_paid": float(total_paid),
        "remaining": float(Decimal(quote.amount_total) - total_paid),
    }


async def _get_quote(db: AsyncSession, quote_id: int, wedding_id: int) -> Optional[VendorQuote]:
    result = await db.execute(
        select(VendorQuote)
        .options(selectinload(VendorQuote.payments))
        .where(VendorQuote.id == quote_id, VendorQuote.wedding_id == wedding_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


@router.get("/")
async def list_quotes(
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    require(can_view_quotes(actor, policy), actor, "quote.view", "You don't have permission to view quotes")

    result = await db.execute(
        select(VendorQuote)
        .options(selectinload(VendorQuote.payments))
        .where(VendorQuote.wedding_id == policy.wedding_id, quote_scope(actor))
        .order_by(VendorQuote.created_at.desc(), VendorQuote.id.desc())
    )
    return [serialize_quote(q) for q in result.scalars().all()]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_quote(
    request: CreateQuoteRequest,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    require(can_manage_quotes(actor, policy), actor, "quote.manage", "You don't have permission to create quotes")

    vendor = await db.execute(
        select(VendorProfile.id).where(
            VendorProfile.id == request.vendor_id,
            VendorProfile.wedding_id == policy.wedding_id,
        )
    )
    if vendor.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Vendor not found")

    quote = VendorQuote(
        wedding_id=policy.wedding_id,
        vendor_id=request.vendor_id,
        title=request.title,
        amount_total=Decimal(str(request.amount_total)),
        currency=request.currency.upper(),
        notes=request.notes,
        line_items=dump_json([item.model_dump() for item in request.line_items]),
        status=request.status,
        created_by_user_id=actor.user_id,
    )
    db.add(quote)
    await db.flush()
    budget_logger.info("quote created", quote_id=quote.id, vendor_id=quote.vendor_id, user_id=actor.user_id)

    quote = await _get_quote(db, quote.id, policy.wedding_id)
    return serialize_quote(quote)
