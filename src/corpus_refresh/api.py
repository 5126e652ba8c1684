"""HTTP boundary."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import APIRouter, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from corpus_refresh import __version__
from corpus_refresh.bootstrap import Services, build_services
from corpus_refresh.config import Settings, get_settings
from corpus_refresh.core import InvalidRequestError, ShuttingDownError, StoreUnavailableError

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _services(request: Request) -> Services:
    return request.app.state.services


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(
    settings: Optional[Settings] = None, services: Optional[Services] = None
) -> FastAPI:
    """Build the FastAPI app.

    When ``services`` is given it is used as-is (and closed on shutdown);
    otherwise components are built from ``settings`` during startup.
    """
    if services is not None:
        settings = services.settings
    elif settings is None:
        settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        svc = services or build_services(settings)
        app.state.services = svc
        await svc.dispatcher.start()
        if settings.refresh.startup_blocking:
            await svc.dispatcher.startup_complete.wait()
        try:
            yield
        finally:
            await svc.aclose()

    app = FastAPI(
        title="corpus-refresh",
        description=f"Randomly sampled {settings.kind.value}s, refreshed on a schedule",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Invalid request parameters"})

    @app.exception_handler(InvalidRequestError)
    async def _invalid_request(request: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(StoreUnavailableError)
    async def _store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
        logger.error("Store unavailable while handling %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.exception_handler(ShuttingDownError)
    async def _shutting_down(request: Request, exc: ShuttingDownError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"error": str(exc)})

    router = APIRouter(prefix=settings.api.prefix)

    @router.get("")
    async def list_items(
        request: Request,
        response: Response,
        page: int = 1,
        page_size: int = Query(settings.api.default_page_size, alias="pageSize"),
        search: Optional[str] = None,
    ) -> dict:
        query = _services(request).query_service
        response.headers.update(NO_CACHE_HEADERS)

        if search is not None and search.strip():
            result = await query.search(search, page, page_size)
        else:
            result = await query.list(page, page_size)

        logger.info(
            "Retrieved %d items for page %d (search: %s)", len(result.items), page, search or "none"
        )
        return {
            "page": result.page,
            "pageSize": result.page_size,
            "total": result.total,
            "totalPages": result.total_pages,
            "items": [item.to_dict() for item in result.items],
            "search": search,
        }

    @router.get("/stats")
    async def stats(request: Request) -> dict:
        svc = _services(request)
        body = {
            "totalItems": await svc.query_service.count(),
            "refreshIntervalMinutes": svc.settings.refresh.interval_minutes,
            "rateLimitMs": svc.settings.rate_limit_delay_ms,
            "batchSize": svc.settings.refresh.batch_size,
            "transportConnected": svc.dispatcher.transport_connected,
            "timestamp": _utcnow_iso(),
        }
        outcome = svc.refresh_service.last_outcome
        if outcome is not None:
            body["lastRefresh"] = {
                "completedAt": svc.refresh_service.last_completed_at.isoformat(),
                "successCount": outcome.success_count,
                "failCount": outcome.fail_count,
            }
        return body

    @router.post("/refresh")
    async def trigger_refresh(
        request: Request,
        batch_size: int = Query(settings.api.default_refresh_batch_size, alias="batchSize"),
    ) -> JSONResponse:
        result = await _services(request).dispatcher.trigger_manual(batch_size)

        if result.queued:
            return JSONResponse(
                status_code=202,
                content={
                    "message": "Refresh triggered",
                    "requestId": result.request_id,
                    "batchSize": result.batch_size,
                },
            )

        return JSONResponse(
            status_code=200,
            content={
                "message": "Refresh completed directly",
                "requestId": result.request_id,
                "batchSize": result.batch_size,
                "successCount": result.outcome.success_count,
                "failCount": result.outcome.fail_count,
                "totalItems": result.total_items,
            },
        )

    @router.get("/{item_id}")
    async def get_item(request: Request, item_id: str) -> JSONResponse:
        item = await _services(request).query_service.get_by_id(item_id)
        if item is None:
            return JSONResponse(status_code=404, content={"error": "Item not found"})
        return JSONResponse(content=item.to_dict())

    app.include_router(router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy", "timestamp": _utcnow_iso()}

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        svc = _services(request)
        try:
            await svc.query_service.count()
        except StoreUnavailableError:
            return JSONResponse(status_code=503, content={"status": "store unavailable"})
        if not svc.dispatcher.startup_complete.is_set():
            return JSONResponse(status_code=503, content={"status": "starting"})
        return JSONResponse(content={"status": "ready", "timestamp": _utcnow_iso()})

    return app
