from collections.abc import Awaitable, Callable
from uuid import uuid4

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response

from app.api.routes.health import router as health_router
from app.api.routes.internal_promo import router as internal_promo_router
from app.api.routes.orders import router as orders_router
from app.api.routes.promo_codes import router as promo_codes_router
from app.core.config import get_settings
from app.core.logging import configure_logging

REQUEST_ID_HEADER = "X-Request-ID"


async def bind_request_context(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)

    docs_enabled = settings.enable_openapi_docs
    app = FastAPI(
        title="Furniture Store API",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.middleware("http")(bind_request_context)

    for router in (health_router, promo_codes_router, orders_router, internal_promo_router):
        app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
        log_config=None,
    )


if __name__ == "__main__":
    run()
