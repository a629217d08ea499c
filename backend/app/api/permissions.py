from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.db.enums import UserRole
from app.db.models import User
from app.api.deps import get_current_user
from app.permissions.constants import Capability
from app.permissions.context import ActorContext
from app.permissions.dependencies import require_couple_actor, require_dashboard_actor
from app.permissions.repository import get_effective_policy, set_policy_override
from app.permissions.role_map import DEFAULT_CAPABILITIES
from app.permissions.roles import is_couple
from app.permissions.service import serialize_matrix

router = APIRouter()


class UpdatePermissionsRequest(BaseModel):
    permissions: Dict[UserRole, Dict[Capability, bool]]


@router.get("/")
async def get_permissions(
    actor: ActorContext = Depends(require_dashboard_actor),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Effective matrix for the wedding, with the defaults for reference."""
    matrix = await get_effective_policy(db, user.wedding_id)
    return {
        "permissions": serialize_matrix(matrix),
        "defaults": serialize_matrix(DEFAULT_CAPABILITIES),
        "can_edit": is_couple(actor.role),
    }


@router.put("/")
async def update_permissions(
    request: UpdatePermissionsRequest,
    actor: ActorContext = Depends(require_couple_actor),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    overrides = {
        role.value: {cap.value: allowed for cap, allowed in caps.items()}
        for role, caps in request.permissions.items()
    }
    matrix = await set_policy_override(db, user.wedding_id, overrides, updated_by_id=actor.user_id)
    return {
        "permissions": serialize_matrix(matrix),
        "defaults": serialize_matrix(DEFAULT_CAPABILITIES),
        "can_edit": True,
    }
