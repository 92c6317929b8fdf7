import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import async_session
from app.middleware.exceptions import register_exception_handlers
from app.middleware.rate_limit import RateLimitMiddleware, close_redis
from app.routers import admin, auth, config, health, wizard
from app.services.record_store import RecordStore
from app.services.step_config import StepConfigStore

logger = logging.getLogger("onboardflow")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.seed_step_config_on_startup:
        async with async_session() as db:
            await StepConfigStore(RecordStore(db)).seed_defaults()
    logger.info("onboardflow started (%s)", settings.environment)
    yield
    await close_redis()


app = FastAPI(
    title="onboardflow",
    description="Multi-step onboarding wizard with admin-configurable pages",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
app.add_middleware(
    RateLimitMiddleware,
    limits={
        "/api/identity": (settings.identity_rate_limit, settings.identity_rate_window),
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/identity", tags=["identity"])
app.include_router(wizard.router, prefix="/api/wizard", tags=["wizard"])

# Admin (require an admin token)
app.include_router(config.router, prefix="/api/admin", tags=["step-config"])
app.include_router(admin.router, prefix="/api/admin", tags=["data"])
