import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agroguard.config import get_settings
from agroguard.database import init_db
from agroguard.routers import analysis, health, records, reports

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = get_settings()
    logger.info(
        "Starting %s (port=%d, remote=%s, offline_mode=%s)",
        settings.service_name,
        settings.server_port,
        "configured" if settings.has_remote_credentials else "not configured",
        settings.offline_mode,
    )
    init_db()

    if settings.auto_sync_enabled:
        try:
            from agroguard.tasks.scheduler import start_scheduler

            start_scheduler()
        except Exception as e:
            logger.warning("Failed to start scheduler: %s", e)

    yield

    logger.info("Shutting down %s", settings.service_name)
    from agroguard.tasks.scheduler import stop_scheduler

    stop_scheduler()


app = FastAPI(
    title="AgroGuard Crop Health Engine",
    description="Leaf-photo crop diagnostics with offline heuristic fallback and cloud sync",
    version=get_settings().model_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(analysis.router, prefix="/api", tags=["analysis"])
app.include_router(records.router, prefix="/api", tags=["records"])
app.include_router(reports.router, prefix="/api", tags=["reports"])
