"""HTTP endpoints: ticker management and the SSE price stream."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from .broadcaster import Broadcaster
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


class TickerRequest(BaseModel):
    ticker: str


class TickerResponse(BaseModel):
    success: bool
    message: str


class TickerList(BaseModel):
    tickers: list[str]


def create_stream_router(registry: SessionRegistry, broadcaster: Broadcaster) -> APIRouter:
    """Create the API router bound to a registry and broadcaster.

    This factory pattern lets us inject both without globals.
    """
    router = APIRouter(prefix="/api", tags=["prices"])

    @router.get("/tickers", response_model=TickerList)
    async def list_tickers() -> TickerList:
        return TickerList(tickers=registry.list())

    @router.post("/tickers", response_model=TickerResponse)
    async def add_ticker(body: TickerRequest) -> TickerResponse:
        ticker = body.ticker.strip().upper()
        logger.info("API: adding ticker %s", ticker)
        success = await registry.add(ticker)
        message = f"Ticker {ticker} added successfully" if success else f"Failed to add ticker {ticker}"
        return TickerResponse(success=success, message=message)

    @router.delete("/tickers/{ticker}", response_model=TickerResponse)
    async def remove_ticker(ticker: str) -> TickerResponse:
        ticker = ticker.strip().upper()
        logger.info("API: removing ticker %s", ticker)
        success = await registry.remove(ticker)
        message = f"Ticker {ticker} removed successfully" if success else f"Ticker {ticker} not found"
        return TickerResponse(success=success, message=message)

    @router.get("/prices/stream")
    async def stream_prices(request: Request, ticker: str | None = None) -> StreamingResponse:
        """SSE endpoint for live price updates.

        Each published change arrives as one event:

            data: {"symbol": "BTCUSD", "price": "50000.12", "observedAtMillis": 1707580800000}

        Pass ?ticker=SYMBOL to receive a single symbol only.
        """
        return StreamingResponse(
            _generate_events(broadcaster, request, symbol=ticker),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    broadcaster: Broadcaster,
    request: Request,
    symbol: str | None = None,
    keepalive: float = 15.0,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted price events.

    Waits on the subscriber's channel rather than polling. Sends a comment
    line every `keepalive` seconds of silence and stops when the client
    disconnects or the subscription is pruned. A blank symbol filter means
    every symbol.
    """
    symbol = (symbol or "").strip() or None
    subscription = broadcaster.subscribe(symbol)
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        # Tell the client to retry after 1 second if the connection drops
        yield "retry: 1000\n\n"
        yield f"data: {json.dumps({'type': 'connected', 'message': 'Price stream connected'})}\n\n"

        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break
            try:
                update = await asyncio.wait_for(subscription.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            if update is None:
                logger.info("SSE subscription closed for: %s", client_ip)
                break
            yield f"data: {json.dumps(update.to_dict())}\n\n"
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
        raise
    finally:
        broadcaster.unsubscribe(subscription)
