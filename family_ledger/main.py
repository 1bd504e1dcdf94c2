"""
FastAPI application factory
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from family_ledger.config import get_settings
from family_ledger.domain.errors import (
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    DomainValidationError,
)
from family_ledger.infrastructure.db.session import check_db_connection
from family_ledger.api.v1 import auth, families, assets, transactions, admin

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    UnauthorizedError: 401,
    ForbiddenError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    DomainValidationError: 400,
}


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Last line of defence: anything the error handlers did not map becomes a logged 500"""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def _register_error_handlers(app: FastAPI) -> None:
    for error_class, status_code in ERROR_STATUS.items():
        def handler(request: Request, exc: Exception, status_code: int = status_code) -> JSONResponse:
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        app.add_exception_handler(error_class, handler)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(title="Family Ledger", debug=settings.DEBUG)

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY,
        session_cookie=settings.SESSION_COOKIE,
        max_age=settings.SESSION_MAX_AGE,
    )
    _register_error_handlers(app)

    for module in (auth, families, assets, transactions, admin):
        app.include_router(module.router)

    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness: the database answers"""
        check_db_connection()
        return "ok"

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("family_ledger.main:app", host="127.0.0.1", port=8000, reload=True)
