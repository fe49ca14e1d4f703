from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.core.logging import setup_logging
from app.db.base import get_db
from app.core.config import settings
from app.routers import cycles as cycles_router
from app.routers import goals as goals_router
from app.routers import tactics as tactics_router
from app.routers import actions as actions_router
from app.routers import shields as shields_router
from app.routers import admin as admin_router
from app.core.errors import (
    MomentumException,
    momentum_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging()

app = FastAPI(
    title="Momentum Engine API",
    description=(
        "**12-week execution cycles**\n\n"
        "Cycles, goals, versioned tactics, daily actions (Monk Mode: 3 per day), "
        "weekly scores, streaks and momentum shields.\n\n"
        "Identify the caller with the `X-User-Id` header. Every response uses the "
        "`{success, data}` / `{success, error}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(MomentumException, momentum_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(cycles_router.router)
app.include_router(goals_router.router)
app.include_router(tactics_router.router)
app.include_router(actions_router.router)
app.include_router(shields_router.router)
app.include_router(admin_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
