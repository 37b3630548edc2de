import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal.api.routes import (
    academics,
    exams,
    grading_scales,
    health,
    marks,
    people,
    reports,
    timetables,
)
from portal.core.config import get_settings
from portal.core.exceptions import AppError
from portal.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from portal.db.bootstrap import ensure_runtime_schema

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.auto_create_schema:
        ensure_runtime_schema()
    yield


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(academics.router, prefix=settings.api_prefix, tags=["academics"])
app.include_router(people.router, prefix=settings.api_prefix, tags=["people"])
app.include_router(timetables.router, prefix=settings.api_prefix, tags=["timetables"])
app.include_router(exams.router, prefix=settings.api_prefix, tags=["exams"])
app.include_router(marks.router, prefix=settings.api_prefix, tags=["marks"])
app.include_router(grading_scales.router, prefix=settings.api_prefix, tags=["grading-scales"])
app.include_router(reports.router, prefix=settings.api_prefix, tags=["reports"])
