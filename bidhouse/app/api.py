"""FastAPI application exposing the Bidhouse auction service.

Run with ``uvicorn bidhouse.app.api:app``.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncIterator

from fastapi import (FastAPI, Query, Request, Response, WebSocket,
                     WebSocketDisconnect, status)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bidhouse import __version__
from bidhouse.domain.errors import AuctionNotFoundError, BiddingError
from bidhouse.infrastructure.observability import (configure_logging,
                                                   configure_tracing,
                                                   format_prometheus,
                                                   get_logger,
                                                   record_api_request)
from bidhouse.services.dto import (AuctionDTO, BidDTO, BidResultDTO,
                                   NotificationDTO)
from bidhouse.services.messages import ConnectionReadyMessage

from .config import (DEFAULT_CORS_ORIGINS, BiddingSettings,
                     get_bidding_settings)
from .dependencies import AuctionServiceDep, Runtime, RuntimeDep, get_runtime

logger = get_logger(__name__)

ERROR_STATUS: dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "validation": status.HTTP_400_BAD_REQUEST,
    "auction_not_active": status.HTTP_409_CONFLICT,
    "auction_not_ended": status.HTTP_409_CONFLICT,
    "no_bids": status.HTTP_409_CONFLICT,
    "seller_cannot_bid": status.HTTP_403_FORBIDDEN,
    "bid_too_low": status.HTTP_400_BAD_REQUEST,
    "already_decided": status.HTTP_409_CONFLICT,
    "conflict": status.HTTP_409_CONFLICT,
    "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}

# WebSocket close code for an unknown auction (4000-4999 are application codes).
WS_AUCTION_NOT_FOUND = 4404


# =============================================================================
# Request / response models
# =============================================================================


class AuctionCreateRequest(BaseModel):
    seller_id: str
    title: str
    description: str | None = None
    starting_price: Decimal
    bid_increment: Decimal
    start_time: datetime
    duration_hours: float


class BidCreateRequest(BaseModel):
    bidder_id: str
    amount: Decimal


class DecisionRequest(BaseModel):
    accepted: bool


class MarkReadRequest(BaseModel):
    ids: list[str]


class MarkReadResponse(BaseModel):
    updated: int


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str


# =============================================================================
# Error handling
# =============================================================================


def error_body(exc: BiddingError) -> dict[str, object]:
    return {"error": exc.kind, "message": str(exc), **exc.details}


async def bidding_error_handler(request: Request, exc: BiddingError) -> JSONResponse:
    code = ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content=error_body(exc))


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "validation", "message": problems or "Invalid request"},
    )


# =============================================================================
# Application factory
# =============================================================================


def create_app(
    settings: BiddingSettings | None = None, runtime: Runtime | None = None
) -> FastAPI:
    """Build the API. The runtime is created lazily from settings at startup."""

    if settings is None and runtime is None:
        settings = get_bidding_settings()
    holder: dict[str, Runtime] = {}
    if runtime is not None:
        holder["runtime"] = runtime

    def current_runtime() -> Runtime:
        return holder["runtime"]

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        active = settings or get_bidding_settings()
        if active.tracing_enabled:
            configure_tracing(
                service_name=active.tracing_service_name,
                endpoint=active.tracing_endpoint,
                sample_rate=active.tracing_sample_rate,
            )
        if "runtime" not in holder:
            holder["runtime"] = Runtime.from_settings(active)
        await holder["runtime"].start()
        logger.info("Bidhouse API %s started", __version__)
        try:
            yield
        finally:
            await holder["runtime"].stop()

    app = FastAPI(title="Bidhouse API", version=__version__, lifespan=lifespan)
    app.dependency_overrides[get_runtime] = current_runtime
    app.add_exception_handler(BiddingError, bidding_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    cors_origins = settings.cors_origins if settings else DEFAULT_CORS_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def record_metrics(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        record_api_request(
            endpoint,
            request.method,
            response.status_code,
            time.perf_counter() - started,
        )
        return response

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(
            content=format_prometheus(), media_type="text/plain; version=0.0.4"
        )

    # -------------------------------------------------------------------------
    # Auctions
    # -------------------------------------------------------------------------

    @app.post(
        "/auctions", status_code=status.HTTP_201_CREATED, response_model=AuctionDTO
    )
    async def create_auction(
        payload: AuctionCreateRequest, service: AuctionServiceDep
    ) -> AuctionDTO:
        return await service.create_auction(
            seller_id=payload.seller_id,
            title=payload.title,
            description=payload.description,
            starting_price=payload.starting_price,
            bid_increment=payload.bid_increment,
            start_time=payload.start_time,
            duration_hours=payload.duration_hours,
        )

    @app.get("/auctions", response_model=list[AuctionDTO])
    async def list_auctions(
        service: AuctionServiceDep,
        status_filter: str = Query(
            "active", alias="status", description="active, pending, ended or all"
        ),
    ) -> list[AuctionDTO]:
        return await service.list_auctions(status_filter)

    @app.get("/auctions/{auction_id}", response_model=AuctionDTO)
    async def get_auction(auction_id: str, service: AuctionServiceDep) -> AuctionDTO:
        return await service.get_auction(auction_id)

    # -------------------------------------------------------------------------
    # Bids and decisions
    # -------------------------------------------------------------------------

    @app.get("/auctions/{auction_id}/bids", response_model=list[BidDTO])
    async def list_bids(auction_id: str, service: AuctionServiceDep) -> list[BidDTO]:
        return await service.list_bids(auction_id)

    @app.post(
        "/auctions/{auction_id}/bids",
        status_code=status.HTTP_201_CREATED,
        response_model=BidResultDTO,
    )
    async def place_bid(
        auction_id: str, payload: BidCreateRequest, service: AuctionServiceDep
    ) -> BidResultDTO:
        return await service.place_bid(auction_id, payload.bidder_id, payload.amount)

    @app.post("/auctions/{auction_id}/decision", response_model=AuctionDTO)
    async def decide(
        auction_id: str, payload: DecisionRequest, service: AuctionServiceDep
    ) -> AuctionDTO:
        return await service.decide(auction_id, payload.accepted)

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    @app.get("/notifications", response_model=list[NotificationDTO])
    async def list_notifications(
        service: AuctionServiceDep,
        user_id: str | None = Query(None),
        unread_only: bool = Query(False),
    ) -> list[NotificationDTO]:
        return await service.list_notifications(user_id or "", unread_only)

    @app.patch("/notifications", response_model=MarkReadResponse)
    async def mark_notifications_read(
        payload: MarkReadRequest, service: AuctionServiceDep
    ) -> MarkReadResponse:
        return MarkReadResponse(
            updated=await service.mark_notifications_read(payload.ids)
        )

    # -------------------------------------------------------------------------
    # Real-time updates
    # -------------------------------------------------------------------------

    @app.websocket("/ws/auctions/{auction_id}")
    async def auction_updates(
        websocket: WebSocket, auction_id: str, runtime: RuntimeDep
    ) -> None:
        await websocket.accept()
        try:
            await runtime.service.get_auction(auction_id)
        except AuctionNotFoundError:
            await websocket.close(code=WS_AUCTION_NOT_FOUND)
            return
        await websocket.send_json(
            ConnectionReadyMessage(
                auction_id=auction_id, server_version=__version__
            ).to_wire()
        )
        runtime.fanout.subscribe(auction_id, websocket)
        try:
            snapshot = await runtime.service.snapshot(auction_id)
            await websocket.send_json(snapshot.to_wire())
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            runtime.fanout.unsubscribe(auction_id, websocket)


app = create_app()

__all__ = ["ERROR_STATUS", "app", "create_app", "error_body"]
