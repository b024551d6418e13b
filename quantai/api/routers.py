"""Internal API routers — /profiles, /analysis, /snapshot endpoints.

No analysis logic here.  Delegates to the bar provider and the analysis
core, and serves snapshots published by running engines.
"""

import logging
from dataclasses import asdict
from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException, Query

from quantai.config import DEFAULT_BAR_LIMIT
from quantai.market.binance_client import MAX_KLINE_LIMIT, SUPPORTED_INTERVALS
from quantai.strategy.analysis import run_pipeline
from quantai.strategy.models import AnalysisSnapshot, InsufficientHistory
from quantai.strategy.profiles import DEFAULT_PROFILE, PROFILE_REGISTRY, get_profile

logger = logging.getLogger("quantai")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_client = None  # Set via configure_routers()
# Keyed by stream name → latest snapshot dict
_latest_snapshots: dict[str, dict] = {}


def configure_routers(client=None) -> None:
    """Inject the bar provider from the application startup.

    Args:
        client: A ``BinanceClient`` instance (or duck-type for tests).
    """
    global _client  # noqa: PLW0603
    _client = client


def update_snapshot(stream_name: str, snapshot: AnalysisSnapshot) -> None:
    """Publish the newest snapshot for *stream_name*, replacing the old one."""
    _latest_snapshots[stream_name] = snapshot.to_dict()


def clear_snapshots() -> None:
    _latest_snapshots.clear()


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/profiles")
async def get_profiles():
    """Return every strategy preset with its parameters."""
    return {
        "default": DEFAULT_PROFILE,
        "profiles": [
            {
                **asdict(p),
                "kind": p.kind.value,
                "warmup_bars": p.warmup_bars,
                "required_bars": p.required_bars,
            }
            for p in PROFILE_REGISTRY.values()
        ],
    }


@router.get("/analysis")
async def get_analysis(
    symbol: str = Query(default="BTCUSDT", min_length=1),
    interval: str = Query(default="1h"),
    strategy: str = Query(default=DEFAULT_PROFILE),
    limit: int = Query(default=DEFAULT_BAR_LIMIT, ge=1, le=MAX_KLINE_LIMIT),
):
    """Fetch fresh bars and return a newly computed snapshot."""
    if _client is None:
        raise HTTPException(status_code=503, detail="Bar provider not configured")
    if interval not in SUPPORTED_INTERVALS:
        raise HTTPException(status_code=400, detail=f"Unsupported interval '{interval}'")
    try:
        profile = get_profile(strategy)
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc.args[0])) from exc
    if limit < profile.required_bars:
        raise HTTPException(
            status_code=422,
            detail=f"limit must be at least {profile.required_bars} for {profile.name}",
        )

    try:
        bars = await _client.fetch_bars(symbol, interval, limit)
    except httpx.HTTPError as exc:
        logger.warning("Bar fetch failed for %s %s: %s", symbol, interval, exc)
        raise HTTPException(status_code=502, detail="Bar provider unavailable") from exc

    try:
        snapshot = run_pipeline(symbol.upper(), interval, bars, profile)
    except InsufficientHistory as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return snapshot.to_dict()


@router.get("/snapshot")
async def get_snapshot(stream: Optional[str] = None):
    """Return the latest engine-published snapshot(s).

    With *stream*, return that stream's snapshot (404 if none yet);
    otherwise all of them keyed by stream name.
    """
    if stream is None:
        return {"snapshots": dict(_latest_snapshots)}
    if stream not in _latest_snapshots:
        raise HTTPException(status_code=404, detail=f"No snapshot for stream '{stream}'")
    return _latest_snapshots[stream]
