"""FastAPI application bootstrap for medgate."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..registry import AuthorizationError
from .config import settings
from .infra.db import init_db
from .routers import access, auth, notifications, records

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": exc.reason})


def create_app() -> FastAPI:
    app = FastAPI(title="medgate API", version="0.1.0", lifespan=lifespan)

    app.add_exception_handler(AuthorizationError, authorization_error_handler)

    app.include_router(records.router, prefix="/records", tags=["records"])
    app.include_router(access.router, prefix="/access", tags=["access"])
    app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
    app.include_router(auth.router, prefix="/auth", tags=["auth"])

    return app


app = create_app()
