"""Binance public REST client — kline (bar history) fetching.

Supplies the ascending, duplicate-free bar series the analysis core
consumes.  Failures are raised to the caller; no synthetic data is
substituted.
"""

import asyncio
import logging
from typing import Optional

import httpx

from quantai.strategy.models import Bar

logger = logging.getLogger("quantai")

SUPPORTED_SYMBOLS: dict[str, str] = {
    "BTCUSDT": "BTC",
    "ETHUSDT": "ETH",
    "XRPUSDT": "XRP",
    "PAXGUSDT": "PAXG",
}
SUPPORTED_INTERVALS: tuple[str, ...] = ("1m", "5m", "15m", "1h", "4h", "1d")
MAX_KLINE_LIMIT = 1000

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


def parse_klines(rows: list) -> list[Bar]:
    """Convert Binance kline arrays into ``Bar`` objects.

    Each row is ``[open_time, open, high, low, close, volume, ...]`` with
    prices as strings.  Output is sorted by time with repeated timestamps
    dropped (first occurrence kept).
    """
    bars: dict[int, Bar] = {}
    for row in rows:
        time = int(row[0])
        if time in bars:
            continue
        bars[time] = Bar(
            time=time,
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
        )
    return [bars[t] for t in sorted(bars)]


class BinanceClient:
    """Async client for the Binance spot market-data API."""

    def __init__(self, base_url: str = "https://api.binance.com") -> None:
        self._base_url = base_url.rstrip("/")

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """Execute an HTTP request with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await getattr(client, method)(
                        url,
                        timeout=30.0,
                        **kwargs,
                    )

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "Binance %s %s returned %d — retry %d/%d in %.1fs",
                        method.upper(), url, resp.status_code,
                        attempt + 1, _MAX_RETRIES, delay,
                    )
                    await asyncio.sleep(delay)
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "Binance %s %s transport error (%s) — retry %d/%d in %.1fs",
                    method.upper(), url, exc,
                    attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Klines ───────────────────────────────────────────────────────────

    async def fetch_bars(
        self,
        symbol: str,
        interval: str,
        limit: int = 200,
    ) -> list[Bar]:
        """Fetch the most recent *limit* bars.

        Args:
            symbol: e.g. ``"BTCUSDT"``
            interval: one of ``SUPPORTED_INTERVALS``
            limit: number of bars (1–1000)

        Returns:
            List of ``Bar`` objects ordered oldest-first.

        Raises:
            ValueError: unsupported interval or out-of-range limit.
        """
        if interval not in SUPPORTED_INTERVALS:
            raise ValueError(
                f"Unsupported interval '{interval}'. "
                f"Available: {', '.join(SUPPORTED_INTERVALS)}"
            )
        if not 1 <= limit <= MAX_KLINE_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_KLINE_LIMIT}, got {limit}")

        url = f"{self._base_url}/api/v3/klines"
        params = {"symbol": symbol.upper(), "interval": interval, "limit": limit}

        resp = await self._request_with_retry("get", url, params=params)
        return parse_klines(resp.json())
