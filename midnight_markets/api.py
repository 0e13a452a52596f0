#!/usr/bin/env python3
"""FastAPI service exposing the dashboard's assets, news and assistant."""
from __future__ import annotations

import argparse
import locale
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import CONFIG
from .coordinator import CoordinatorSnapshot
from .dashboard import Dashboard
from .errors import UpstreamError
from .logging_config import log_config, setup_logging
from .models import Chain, ChatReply, MarketMode, PricePoint, PulseReport, SortKey, Timeframe

logger = logging.getLogger("midnight_markets.api")
app = FastAPI(title="Midnight Markets API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class QueryRequest(BaseModel):
    mode: Optional[MarketMode] = None
    chain: Optional[Chain] = None
    search_text: Optional[str] = None


class SortRequest(BaseModel):
    key: SortKey


class ChatRequest(BaseModel):
    message: str


def get_dashboard(request: Request) -> Dashboard:
    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        dashboard = Dashboard()
        request.app.state.dashboard = dashboard
    return dashboard


@app.on_event("startup")
async def _startup() -> None:
    if getattr(app.state, "dashboard", None) is None:
        app.state.dashboard = Dashboard()
    await app.state.dashboard.start()


@app.on_event("shutdown")
async def _shutdown() -> None:
    dashboard = getattr(app.state, "dashboard", None)
    if dashboard is not None:
        await dashboard.aclose()


@app.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    dashboard = get_dashboard(request)
    return {
        "status": "ok",
        "assistant_mode": dashboard.assistant.mode.value,
        "generation": dashboard.coordinator.generation,
    }


@app.get("/api/assets", response_model=CoordinatorSnapshot)
async def get_assets(request: Request) -> CoordinatorSnapshot:
    return get_dashboard(request).coordinator.snapshot()


@app.post("/api/query", response_model=CoordinatorSnapshot)
async def update_query(body: QueryRequest, request: Request) -> CoordinatorSnapshot:
    coordinator = get_dashboard(request).coordinator
    # Mode first: switching mode resets chain and search
    if body.mode is not None:
        await coordinator.set_mode(body.mode)
    if body.chain is not None:
        await coordinator.set_chain(body.chain)
    if body.search_text is not None:
        await coordinator.set_search_text(body.search_text)
    return coordinator.snapshot()


@app.post("/api/sort", response_model=CoordinatorSnapshot)
async def toggle_sort(body: SortRequest, request: Request) -> CoordinatorSnapshot:
    coordinator = get_dashboard(request).coordinator
    coordinator.toggle_sort(body.key)
    return coordinator.snapshot()


@app.post("/api/refresh", response_model=CoordinatorSnapshot)
async def refresh(request: Request) -> CoordinatorSnapshot:
    coordinator = get_dashboard(request).coordinator
    await coordinator.refresh()
    return coordinator.snapshot()


@app.get("/api/assets/{asset_id}/history", response_model=List[PricePoint])
async def asset_history(asset_id: str, request: Request, timeframe: str = Timeframe.D7.value) -> List[PricePoint]:
    try:
        frame = Timeframe(timeframe)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown timeframe {timeframe!r}")
    try:
        return await get_dashboard(request).ranked.fetch_history(asset_id, frame)
    except UpstreamError as exc:
        logger.warning("api.history_failed asset=%s timeframe=%s: %s", asset_id, frame.value, exc)
        raise HTTPException(status_code=502, detail="Price history unavailable")


@app.get("/api/news")
async def get_news(request: Request, force: bool = False) -> Dict[str, Any]:
    result = await get_dashboard(request).news.fetch(force=force)
    return {
        "items": [item.model_dump(mode="json") for item in result.items],
        "error": result.error,
        "from_cache": result.from_cache,
    }


@app.post("/api/chat", response_model=ChatReply)
async def chat(body: ChatRequest, request: Request) -> ChatReply:
    try:
        return await get_dashboard(request).assistant.ask(body.message)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@app.get("/api/pulse", response_model=PulseReport)
async def pulse(request: Request) -> PulseReport:
    return await get_dashboard(request).assistant.pulse()


@app.get("/api/suggestions")
async def suggestions(request: Request) -> Dict[str, Any]:
    return {"suggestions": await get_dashboard(request).assistant.suggestions()}


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Midnight Markets API service")
    parser.add_argument("--host", default=CONFIG['HOST'])
    parser.add_argument("--port", type=int, default=CONFIG['PORT'])
    parser.add_argument("--log-level", default="info")
    parser.add_argument("--reload", action="store_true", help="Enable uvicorn autoreload (dev only)")
    args = parser.parse_args()

    locale.setlocale(locale.LC_COLLATE, "")
    setup_logging(args.log_level.upper())
    log_config(CONFIG)

    import uvicorn  # Imported lazily so library users don't require it

    uvicorn.run(
        "midnight_markets.api:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
