"""FastAPI application entry point.

This module wires together the API routers, configures middleware, error
handlers and startup tasks, and exposes the ASGI application object used
by the server.
"""

import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.openapi.utils import get_openapi
from sqlalchemy.exc import OperationalError
from app.routes import auth, users, ai_quiz, quizzes, lessons
from app.database import create_db_and_tables
from app.errors import AssessmentError, StoreUnavailable

# Basic logging configuration.  The log level can be controlled with an
# environment variable so deployments can adjust verbosity without code
# changes.
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL))
logger = logging.getLogger(__name__)

app = FastAPI(title="LMS Assessment Engine", docs_url=None)


def custom_openapi():
    """Generate an OpenAPI schema that is aware of our `/api` proxy prefix."""

    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    # The reverse proxy serves the API under `/api`; tell Swagger about it.
    openapi_schema["servers"] = [{"url": "/api"}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    """Create any missing tables before serving requests."""

    await create_db_and_tables()


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(ai_quiz.router)
app.include_router(quizzes.router)
app.include_router(lessons.router)


@app.get("/docs", include_in_schema=False)
async def custom_swagger_ui_html():
    """Serve the interactive docs with the correct API prefix."""

    # The API is served behind a `/api` prefix by the reverse proxy, so the
    # schema lives at `/api/openapi.json` rather than `/openapi.json`.
    return get_swagger_ui_html(openapi_url="/api/openapi.json", title="API Docs")


@app.get("/")
async def read_root():
    return {"message": f"Welcome to {app.title} API"}


@app.exception_handler(AssessmentError)
async def assessment_error_handler(request: Request, exc: AssessmentError):
    """Render domain errors as ``{"code", "message"}`` with their status."""
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(OperationalError)
async def store_unavailable_handler(request: Request, exc: OperationalError):
    """Database connectivity failures surface as a 503, not a 500."""
    logger.error("Database unavailable during %s: %s", request.url.path, exc)
    err = StoreUnavailable()
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler that logs the stack trace once."""
    logger.exception("Unhandled error during request %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )
