"""FastAPI management API for tenant permission sync."""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from permsync.infra.logging import app_logger
from permsync.infra.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from permsync.api.routers import health, permissions


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    app_logger.info("Application starting up")

    yield

    app_logger.info("Application shutting down")

    from permsync.infra.database import engine
    engine.dispose()


app = FastAPI(
    title="Permission Sync API",
    description="""
    Keeps the portal application's permissions and admin roles current in every managed tenant.

    ## Features

    - **Permission status**: Read when permissions were last applied to a tenant
    - **Refresh**: Queue a permission update for a tenant
    - **Jobs**: Track queued updates

    ## Authentication

    Tenant and job endpoints require the `X-API-Key` header.
    """,
    version="1.0.0",
    lifespan=lifespan,
    tags_metadata=[
        {
            "name": "Permissions",
            "description": "Tenant permission status and queued updates",
        },
        {
            "name": "Health",
            "description": "Health check and monitoring endpoints",
        },
    ],
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)  # Outermost, so the request ID is set before logging

app.include_router(health.router)
app.include_router(permissions.router)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})["ApiKeyAuth"] = {
        "type": "apiKey",
        "in": "header",
        "name": "X-API-Key",
    }
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi
