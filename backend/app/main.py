from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import activity, auth, catalog, constraints, curriculum, health, schedules
from app.core.config import get_settings
from app.core.exceptions import AppError
from app.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    yield


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed | %s | details=%s", request.method, request.url.path, exc.message, exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])
app.include_router(catalog.router, prefix=settings.api_prefix, tags=["catalog"])
app.include_router(curriculum.router, prefix=settings.api_prefix, tags=["curriculum"])
app.include_router(constraints.router, prefix=settings.api_prefix, tags=["constraints"])
app.include_router(schedules.router, prefix=settings.api_prefix, tags=["teaching-schedules"])
app.include_router(activity.router, prefix=settings.api_prefix, tags=["activity"])
