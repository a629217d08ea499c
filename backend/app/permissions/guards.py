from app.core.logging import permissions_logger
from .context import ActorContext
from .exceptions import PermissionDenied


def require(allowed: bool, actor: ActorContext, action: str, message: str, resource_id=None) -> None:
    """Turn a negative decision into a 403, logging the denial for audit/trace."""
    if allowed:
        return
    permissions_logger.info(
        f"[PERMS_DENIED] user_id={actor.user_id} role={actor.role.value} action={action}",
        resource_id=resource_id,
    )
    raise PermissionDenied(message)
