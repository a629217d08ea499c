from dataclasses import dataclass
from typing import Optional

from app.db.enums import UserRole


@dataclass(frozen=True)
class ActorContext:
    """Who is asking: supplied by the session layer for every request."""
    user_id: int
    role: UserRole
    vendor_profile_id: Optional[int] = None

    @property
    def has_vendor_profile(self) -> bool:
        return self.vendor_profile_id is not None
