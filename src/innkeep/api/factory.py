"""FastAPI application factory exposing the engine over HTTP."""

from fastapi import FastAPI, Request, Response
import psycopg2

from innkeep.engine import Engine, build_engine
from innkeep.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

from .errors import storage_error_handler
from .routes import availability, inventory, quotes, restrictions


def create_app(engine: Engine | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        engine: Pre-built engine (tests inject one with fake loaders).
                Defaults to build_engine() with database-backed loaders.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Innkeep",
        docs_url=None,
        redoc_url=None,
    )
    app.state.engine = engine if engine is not None else build_engine()

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.add_exception_handler(psycopg2.Error, storage_error_handler)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    app.include_router(availability.router)
    app.include_router(quotes.router)
    app.include_router(restrictions.router)
    app.include_router(inventory.router)

    return app
