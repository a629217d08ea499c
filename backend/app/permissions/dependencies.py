from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.logging import set_actor
from app.db.database import get_db
from app.db.models import User, VendorProfile
from .context import ActorContext
from .guards import require
from .repository import load_policy
from .roles import is_couple, is_dashboard_role
from .service import WeddingPolicy


async def get_actor(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ActorContext:
    """Actor context for the authenticated user, with their vendor profile if any."""
    result = await db.execute(
        select(VendorProfile.id).where(
            VendorProfile.user_id == user.id,
            VendorProfile.wedding_id == user.wedding_id,
        )
    )
    set_actor(user.id, user.role.value)
    return ActorContext(
        user_id=user.id,
        role=user.role,
        vendor_profile_id=result.scalar_one_or_none(),
    )


async def get_wedding_policy(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WeddingPolicy:
    return await load_policy(db, user.wedding_id)


async def require_dashboard_actor(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    require(is_dashboard_role(actor.role), actor, "dashboard", "Forbidden")
    return actor


async def require_couple_actor(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    require(is_couple(actor.role), actor, "permissions.edit", "Only bride and groom can modify permissions")
    return actor
