import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sellify.config import settings
from sellify.database import Base, SessionLocal, engine
from sellify.logging_config import get_logger, setup_logging
from sellify.routers import audit, catalog, decision, quota
from sellify.runtime import get_runtime
from sellify.services.storage_service import restore_snapshots

setup_logging(settings.log_level, json_output=not settings.debug)
logger = get_logger("main")

app = FastAPI(
    title="Sellify Core",
    description="Decision, quota and validation core for automated sales messaging",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(decision.router)
app.include_router(quota.router)
app.include_router(catalog.router)
app.include_router(audit.router)


def _is_under_test() -> bool:
    return bool(os.environ.get("PYTEST_CURRENT_TEST"))


@app.on_event("startup")
async def start_core() -> None:
    if _is_under_test():
        return

    runtime = get_runtime()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        restore_snapshots(db, runtime.quotas, runtime.conversations)
    finally:
        db.close()

    # resets missed while the process was down
    runtime.scheduler.fire()

    if settings.quota_reset_scheduler_enabled:
        runtime.scheduler.start()
    else:
        logger.warning("Quota reset scheduler disabled")

    logger.info(
        "Sellify core started",
        extra={"context": {"tenants": len(runtime.quotas.tenants()), "generator": runtime.cycle.provider is not None}},
    )


@app.on_event("shutdown")
async def stop_core() -> None:
    await get_runtime().scheduler.stop()


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "sellify-core", "version": app.version}
