# app/main.py
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.admin.routes import router as admin_router
from app.auth.routes import router as auth_router
from app.comment.presence import presence, sweep_forever
from app.comment.routes import router as comment_router
from app.core.config import get_settings
from app.core.database import Base, engine
from app.core.exceptions import AppException
from app.core.logging import setup_logging
from app.realtime.routes import router as realtime_router
from app.ticket.routes import router as ticket_router
from app.vote.routes import router as vote_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: expire typing indicators even when nobody asks for them
    sweeper = asyncio.create_task(sweep_forever(presence, settings.PRESENCE_SWEEP_SECONDS))
    logger.info("Presence sweeper started", extra={"interval": settings.PRESENCE_SWEEP_SECONDS})

    yield

    # Shutdown
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    logger.info("Presence sweeper stopped")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESC,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(exc.message, extra={"code": exc.error_code, "path": request.url.path})
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.error_code},
        headers=headers,
    )


# Routers
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(ticket_router)
app.include_router(vote_router)
app.include_router(comment_router)
app.include_router(realtime_router)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}
