import json
from typing import Any, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import log_operation, permissions_logger
from app.db.models import PermissionPolicy
from .service import CapabilityMatrix, WeddingPolicy, parse_overrides, serialize_matrix

# INSERT ... ON CONFLICT (wedding_id) DO UPDATE, per backend
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def _get_policy_row(db: AsyncSession, wedding_id: int) -> Optional[PermissionPolicy]:
    result = await db.execute(
        select(PermissionPolicy)
        .where(PermissionPolicy.wedding_id == wedding_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _decode(raw: Optional[str]) -> Any:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        permissions_logger.warning("[PERMS] stored policy is not valid JSON; using defaults")
        return {}


async def load_policy(db: AsyncSession, wedding_id: int) -> WeddingPolicy:
    """The wedding's policy; no stored row means the plain defaults."""
    row = await _get_policy_row(db, wedding_id)
    if row is None:
        return WeddingPolicy(wedding_id=wedding_id)
    return WeddingPolicy(wedding_id=wedding_id, overrides=parse_overrides(_decode(row.permissions)))


async def get_effective_policy(db: AsyncSession, wedding_id: int) -> CapabilityMatrix:
    policy = await load_policy(db, wedding_id)
    return policy.matrix()


def _upsert_statement(dialect_name: str, wedding_id: int, document: str, updated_by_id: Optional[int]):
    try:
        insert = _UPSERT_INSERTS[dialect_name]
    except KeyError:
        raise RuntimeError(f"permission policy upsert is not supported on {dialect_name!r}")
    stmt = insert(PermissionPolicy).values(
        wedding_id=wedding_id,
        permissions=document,
        updated_by_id=updated_by_id,
    )
    return stmt.on_conflict_do_update(
        index_elements=[PermissionPolicy.wedding_id],
        set_={
            "permissions": stmt.excluded.permissions,
            "updated_by_id": stmt.excluded.updated_by_id,
            "updated_at": func.now(),
        },
    )


@log_operation("set_policy_override", permissions_logger)
async def set_policy_override(
    db: AsyncSession,
    wedding_id: int,
    overrides: Mapping[str, Any],
    updated_by_id: Optional[int] = None,
) -> CapabilityMatrix:
    """Upsert the wedding's override document and return the merged matrix.

    The whole document is replaced in a single statement, so concurrent first
    writes for a wedding cannot collide on the unique key; the last writer
    wins. Only couple roles may call this; the route enforces it.
    """
    parsed = parse_overrides(overrides)
    document = json.dumps(serialize_matrix(parsed), sort_keys=True)

    dialect_name = db.get_bind().dialect.name
    await db.execute(_upsert_statement(dialect_name, wedding_id, document, updated_by_id))

    permissions_logger.info(
        "[PERMS] policy updated",
        wedding_id=wedding_id,
        updated_by=updated_by_id,
        roles=sorted(role.value for role in parsed),
    )
    return WeddingPolicy(wedding_id=wedding_id, overrides=parsed).matrix()
