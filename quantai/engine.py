"""QuantAI — analysis engine (refresh loop).

Connects the bar provider and the analysis core into a single polling
loop.  Every cycle fetches the full visible history and recomputes the
snapshot from scratch; nothing from a previous cycle is fed back in.
"""

import asyncio
import logging

import httpx

from quantai.api.routers import update_snapshot
from quantai.market.binance_client import MAX_KLINE_LIMIT, BinanceClient
from quantai.models.stream_config import StreamConfig
from quantai.strategy.analysis import run_pipeline
from quantai.strategy.models import AnalysisSnapshot
from quantai.strategy.profiles import get_profile

logger = logging.getLogger("quantai")


class AnalysisEngine:
    """Runs fetch → enrich → analyze for one stream.

    Args:
        client: A ``BinanceClient`` (or compatible duck-type / mock).
        stream: Symbol, interval, profile and cadence for this stream.
    """

    def __init__(self, client: BinanceClient, stream: StreamConfig) -> None:
        self._client = client
        self._stream = stream
        self._profile = get_profile(stream.strategy)
        self._profile.validate()
        if not self._profile.required_bars <= stream.bar_limit <= MAX_KLINE_LIMIT:
            raise ValueError(
                f"{stream.name}: bar_limit must be between "
                f"{self._profile.required_bars} and {MAX_KLINE_LIMIT}, got {stream.bar_limit}"
            )
        self._running: bool = False
        self._cycle_count: int = 0

    @property
    def stream_name(self) -> str:
        return self._stream.name

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    def stop(self) -> None:
        """Signal the engine to stop after the current cycle."""
        self._running = False

    # ── Single cycle ─────────────────────────────────────────────────────

    async def run_once(self) -> AnalysisSnapshot:
        """Fetch bars, run the whole pipeline, publish and return the snapshot.

        Raises whatever the provider or the core raises (``httpx.HTTPError``,
        ``InsufficientHistory``).
        """
        bars = await self._client.fetch_bars(
            self._stream.symbol, self._stream.interval, self._stream.bar_limit,
        )
        snapshot = run_pipeline(
            self._stream.symbol, self._stream.interval, bars, self._profile,
        )
        update_snapshot(self.stream_name, snapshot)
        return snapshot

    # ── Polling loop ─────────────────────────────────────────────────────

    async def run(self, max_cycles: int = 0, on_snapshot=None) -> list[AnalysisSnapshot]:
        """Run the refresh loop until stopped.

        Args:
            max_cycles: Stop after this many cycles (0 = unlimited).
            on_snapshot: Optional callable invoked with each new snapshot.

        Returns:
            Snapshots from the successful cycles.
        """
        self._running = True
        results: list[AnalysisSnapshot] = []
        cycle = 0

        while self._running:
            cycle += 1
            self._cycle_count += 1
            try:
                snapshot = await self.run_once()
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("%s cycle %d error: %s", self.stream_name, cycle, exc)
            else:
                results.append(snapshot)
                logger.info(
                    "%s cycle %d: %s (%.0f%%), %d signal(s)",
                    self.stream_name, cycle, snapshot.action.value,
                    snapshot.confidence, len(snapshot.signals),
                )
                if on_snapshot is not None:
                    on_snapshot(snapshot)

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep, checks _running every second
            remaining = self._stream.refresh_interval_seconds
            while remaining > 0 and self._running:
                step = min(1.0, remaining)
                await asyncio.sleep(step)
                remaining -= step

        self._running = False
        return results
