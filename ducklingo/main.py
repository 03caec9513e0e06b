from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from loguru import logger

from ducklingo.core.config import settings
from ducklingo.core.database import get_db
from ducklingo.core.exceptions import AttemptRetrievalError
from ducklingo.core.logging import setup_logging
from ducklingo.routers import rewards


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown events"""
    setup_logging()
    logger.info("🦆 Starting Ducklingo API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Invalid medal or timezone configuration is a deployment error: refuse to start
    requirements = rewards.get_medal_requirements()
    logger.info(f"Medal requirements loaded: {requirements.to_dict()}")
    logger.info(f"Streak timezone: {rewards.get_streak_timezone().key}")

    yield

    logger.info("Shutting down Ducklingo API")


app = FastAPI(
    title="Ducklingo API",
    description="Rewards, streaks and leaderboard for Ducklingo grammar practice",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rewards.router, prefix="/api/rewards", tags=["rewards"])


@app.exception_handler(AttemptRetrievalError)
async def attempt_retrieval_error_handler(request: Request, exc: AttemptRetrievalError):
    logger.error(f"Progress unavailable on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=503,
        content={"detail": "Could not compute your progress"},
    )


@app.get("/")
async def root():
    return JSONResponse(
        content={
            "message": "Ducklingo API",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }
    )


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint with database connectivity verification
    """
    health_status = {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
        "services": {}
    }

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        health_status["services"]["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "degraded"
        health_status["services"]["database"] = "unhealthy"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)
