import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from futurehuman.config import settings
from futurehuman.middleware.exceptions import register_exception_handlers
from futurehuman.routers import account, agents, auth, connections, health
from futurehuman.utils.cache import close_redis

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("FutureHuman API starting (%s)", settings.environment)
    yield
    await close_redis()


app = FastAPI(
    title="FutureHuman",
    description="Agent builder API: agent profiles and their service connections",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(account.router, prefix="/api/account", tags=["account"])
app.include_router(agents.router, prefix="/api/agents", tags=["agents"])
app.include_router(
    connections.router,
    prefix="/api/agents/{agent_id}/connections",
    tags=["connections"],
)
