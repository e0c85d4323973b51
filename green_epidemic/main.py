"""
Green Epidemic API — Application entry point.

Bootstraps FastAPI, wires up middleware and exception handlers, registers
route groups, and manages the MongoDB connection lifecycle.

Run locally:
    uvicorn green_epidemic.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from green_epidemic.core.config import settings
from green_epidemic.core.database import close_mongo_connection, connect_to_mongo
from green_epidemic.core.errors import register_exception_handlers
from green_epidemic.core.rate_limit import limiter
from green_epidemic.routes.admin import router as admin_router
from green_epidemic.routes.analysis import router as analysis_router
from green_epidemic.routes.auth import router as auth_router
from green_epidemic.routes.chat import router as chat_router
from green_epidemic.routes.health import API_VERSION
from green_epidemic.routes.health import router as health_router
from green_epidemic.routes.health_stats import router as health_stats_router
from green_epidemic.routes.hotspots import router as hotspots_router
from green_epidemic.routes.notifications import router as notifications_router
from green_epidemic.routes.reports import router as reports_router
from green_epidemic.routes.risk import router as risk_router
from green_epidemic.routes.surveillance import router as surveillance_router
from green_epidemic.routes.users import router as users_router
from green_epidemic.routes.weather import router as weather_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Code before `yield` runs on startup; code after runs on shutdown."""
    logger.info("Starting Green Epidemic API (env: %s)", settings.environment)
    await connect_to_mongo()
    yield
    logger.info("Shutting down Green Epidemic API")
    await close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Green Epidemic API",
    description=(
        "Community health reporting, proximity alerts, patient risk scoring "
        "and AI situational analysis. AI output is advisory, not a diagnosis."
    ),
    version=API_VERSION,
    lifespan=lifespan,
    # Disable docs in production to reduce attack surface
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit("N/minute") + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Errors ────────────────────────────────────────────────────────────────────
# Validation → 400, anything unhandled → generic 500 (traceback logged only).
register_exception_handlers(app)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, tags=["health"])

# Accounts
app.include_router(auth_router)
app.include_router(users_router)

# Community reporting + alerts
app.include_router(reports_router)
app.include_router(surveillance_router)
app.include_router(notifications_router)
app.include_router(weather_router)
app.include_router(hotspots_router)

# Clinical
app.include_router(risk_router)
app.include_router(chat_router)

# AI analysis
app.include_router(analysis_router)

# Administration + scheduler
app.include_router(admin_router)
app.include_router(health_stats_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "Green Epidemic API",
        "version": API_VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
