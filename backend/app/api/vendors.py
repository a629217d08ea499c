"""
Vendor directory endpoints, plus the vendor portal's own-profile route.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.deps import get_current_user
from app.core.logging import api_logger
from app.db.database import get_db
from app.db.enums import UserRole
from app.db.models import Payment, Task, User, VendorProfile, VendorQuote
from app.permissions.context import ActorContext
from app.permissions.dependencies import get_actor, get_wedding_policy
from app.permissions.guards import require
from app.permissions.roles import is_vendor
from app.permissions.service import WeddingPolicy
from app.permissions.vendors import can_manage_vendors, can_view_vendor, can_view_vendors

router = APIRouter()
portal_router = APIRouter()


class CreateVendorRequest(BaseModel):
    company_name: str = Field(min_length=1, max_length=200)
    vendor_type: Optional[str] = Field(default=None, max_length=50)
    contact_name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    user_id: Optional[int] = None


class UpdateVendorRequest(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    vendor_type: Optional[str] = Field(default=None, max_length=50)
    contact_name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    user_id: Optional[int] = None


def serialize_vendor(vendor: VendorProfile) -> dict:
    user = vendor.user
    return {
        "id": vendor.id,
        "company_name": vendor.company_name,
        "vendor_type": vendor.vendor_type,
        "contact_name": vendor.contact_name,
        "email": vendor.email,
        "phone": vendor.phone,
        "user_id": vendor.user_id,
        "user": {"id": user.id, "display_name": user.display_name, "email": user.email} if user else None,
        "created_at": vendor.created_at.isoformat() if vendor.created_at else None,
    }


async def _get_vendor(db: AsyncSession, vendor_id: int, wedding_id: int) -> Optional[VendorProfile]:
    result = await db.execute(
        select(VendorProfile)
        .options(selectinload(VendorProfile.user))
        .where(VendorProfile.id == vendor_id, VendorProfile.wedding_id == wedding_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _vendor_or_404(db: AsyncSession, vendor_id: int, policy: WeddingPolicy) -> VendorProfile:
    vendor = await _get_vendor(db, vendor_id, policy.wedding_id)
    if vendor is None:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return vendor


async def _check_login_link(db: AsyncSession, user_id: int, wedding_id: int, vendor_id: Optional[int] = None) -> None:
    """A profile may only link a VENDOR account of the same wedding, once."""
    result = await db.execute(select(User).where(User.id == user_id, User.wedding_id == wedding_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if user.role != UserRole.vendor:
        raise HTTPException(status_code=400, detail="Only vendor accounts can be linked to a vendor profile")

    taken = await db.execute(
        select(VendorProfile.id).where(VendorProfile.user_id == user_id, VendorProfile.id != vendor_id)
    )
    if taken.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="User is already linked to another vendor profile")


@router.get("/")
async def list_vendors(
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    require(can_view_vendors(actor, policy), actor, "vendor.view", "You don't have permission to view vendors")

    result = await db.execute(
        select(VendorProfile)
        .options(selectinload(VendorProfile.user))
        .where(VendorProfile.wedding_id == policy.wedding_id)
        .order_by(VendorProfile.company_name.asc(), VendorProfile.id.asc())
    )
    return [serialize_vendor(v) for v in result.scalars().all()]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_vendor(
    request: CreateVendorRequest,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    require(can_manage_vendors(actor, policy), actor, "vendor.manage", "You don't have permission to manage vendors")
    if request.user_id is not None:
        await _check_login_link(db, request.user_id, policy.wedding_id)

    vendor = VendorProfile(wedding_id=policy.wedding_id, **request.model_dump())
    db.add(vendor)
    await db.flush()
    api_logger.info("vendor created", vendor_id=vendor.id, user_id=actor.user_id)

    vendor = await _get_vendor(db, vendor.id, policy.wedding_id)
    return serialize_vendor(vendor)


@router.get("/{vendor_id}")
async def get_vendor(
    vendor_id: int,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    vendor = await _vendor_or_404(db, vendor_id, policy)
    require(can_view_vendor(vendor, actor, policy), actor, "vendor.view", "You don't have permission to view this vendor", vendor.id)
    return serialize_vendor(vendor)


@router.patch("/{vendor_id}")
async def update_vendor(
    vendor_id: int,
    request: UpdateVendorRequest,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    vendor = await _vendor_or_404(db, vendor_id, policy)
    require(can_manage_vendors(actor, policy), actor, "vendor.manage", "You don't have permission to manage vendors", vendor.id)

    data = request.model_dump(exclude_unset=True)
    if "company_name" in data and data["company_name"] is None:
        raise HTTPException(status_code=400, detail="company_name cannot be cleared")
    if data.get("user_id") is not None:
        await _check_login_link(db, data["user_id"], policy.wedding_id, vendor.id)

    for field, value in data.items():
        setattr(vendor, field, value)
    await db.flush()
    api_logger.info("vendor updated", vendor_id=vendor.id, user_id=actor.user_id, fields=sorted(data))

    vendor = await _get_vendor(db, vendor.id, policy.wedding_id)
    return serialize_vendor(vendor)


@router.delete("/{vendor_id}")
async def delete_vendor(
    vendor_id: int,
    actor: ActorContext = Depends(get_actor),
    policy: WeddingPolicy = Depends(get_wedding_policy),
    db: AsyncSession = Depends(get_db),
):
    vendor = await _vendor_or_404(db, vendor_id, policy)
    require(can_manage_vendors(actor, policy), actor, "vendor.manage", "You don't have permission to manage vendors", vendor.id)

    # Quotes and payments are the budget's history; they keep the vendor alive
    quotes = await db.scalar(select(func.count(VendorQuote.id)).where(VendorQuote.vendor_id == vendor.id))
    payments = await db.scalar(select(func.count(Payment.id)).where(Payment.vendor_id == vendor.id))
    if quotes or payments:
        raise HTTPException(status_code=409, detail="Vendor has quotes or payments and cannot be deleted")

    await db.execute(update(Task).where(Task.vendor_id == vendor.id).values(vendor_id=None))
    await db.delete(vendor)
    await db.flush()
    api_logger.info("vendor deleted", vendor_id=vendor_id, user_id=actor.user_id)
    return {"success": True}


@portal_router.get("/me")
async def get_own_vendor_profile(
    actor: ActorContext = Depends(get_actor),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The vendor portal's landing data: the signed-in vendor and their profile."""
    require(is_vendor(actor.role), actor, "vendor.me", "Only vendors have a vendor profile")
    if not actor.has_vendor_profile:
        raise HTTPException(status_code=404, detail="Vendor profile not found")

    vendor = await _get_vendor(db, actor.vendor_profile_id, user.wedding_id)
    return {
        "user": {
            "id": user.id,
            "display_name": user.display_name,
            "email": user.email,
            "role": user.role.value,
        },
        "vendor_profile": serialize_vendor(vendor),
    }
