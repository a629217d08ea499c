import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import health, payments, permissions, quotes, tasks, vendors
from app.core.config import settings, logger
from app.core.middleware import RequestContextMiddleware, global_exception_handler
from app.db.database import create_tables

API_ROUTERS = (
    (tasks.router, "/api/tasks", "Tasks"),
    (permissions.router, "/api/permissions", "Permissions"),
    (quotes.router, "/api/quotes", "Quotes"),
    (payments.router, "/api/payments", "Payments"),
    (vendors.router, "/api/vendors", "Vendors"),
    (vendors.portal_router, "/api/vendor", "Vendor Portal"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    # Alembic owns the production schema
    if settings.APP_ENV != "production":
        await create_tables()
    logger.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)
    yield


app = FastAPI(
    title="Wedding Planner API",
    description="Shared wedding planning: tasks, vendors, quotes and payments with per-role visibility",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(Exception, global_exception_handler)

for router, prefix, tag in API_ROUTERS:
    app.include_router(router, prefix=prefix, tags=[tag])
app.include_router(health.router, tags=["Health"])


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": settings.APP_NAME}
