from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import db_logger
from app.db.database import get_db
from app.db.models import PermissionPolicy

router = APIRouter()


@router.get('/healthz')
def healthz():
    """Liveness: the process is up."""
    return {"status": "ok"}


@router.get('/readyz')
async def readyz(db: AsyncSession = Depends(get_db)):
    """Readiness: the database answers and the policy table is reachable."""
    try:
        await db.execute(select(func.count()).select_from(PermissionPolicy))
    except Exception as e:
        db_logger.error('readiness check failed', error=e)
        raise HTTPException(status_code=503, detail='Not ready')
    return {"status": "ready"}
