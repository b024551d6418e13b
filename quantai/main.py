"""QuantAI — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
one-shot analysis, a console watch loop, and the API-plus-engine mode.
"""

import asyncio
import logging

import httpx
from fastapi import FastAPI

from quantai.api.routers import router

app = FastAPI(title="QuantAI Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("quantai")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import signal

    from quantai.api.routers import configure_routers
    from quantai.config import load_config
    from quantai.engine import AnalysisEngine
    from quantai.market.binance_client import SUPPORTED_INTERVALS, BinanceClient
    from quantai.strategy.profiles import PROFILE_REGISTRY

    parser = argparse.ArgumentParser(description="QuantAI market analysis")
    parser.add_argument(
        "--mode",
        choices=["analyze", "watch", "serve"],
        default="analyze",
        help="analyze once, watch in the console, or serve the API (default: analyze)",
    )
    parser.add_argument("--symbol", help="Trading pair, e.g. BTCUSDT")
    parser.add_argument("--interval", choices=SUPPORTED_INTERVALS, help="Bar interval")
    parser.add_argument(
        "--strategy",
        type=str.upper,
        choices=list(PROFILE_REGISTRY),
        help="Strategy profile",
    )
    parser.add_argument("--limit", type=int, help="Bars to fetch per cycle")
    args = parser.parse_args()

    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        stream = _resolve_stream(args, config)
    except ValueError as exc:
        parser.error(str(exc))

    client = BinanceClient(config.binance_base_url)
    configure_routers(client=client)
    engine = AnalysisEngine(client, stream)

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        engine.stop()

    signal.signal(signal.SIGINT, handle_shutdown)

    if args.mode == "analyze":
        asyncio.run(_run_analyze_once(engine))
    elif args.mode == "watch":
        asyncio.run(_run_watch(engine))
    else:
        asyncio.run(_run_server_and_engine(engine, config.api_port))


def _resolve_stream(args, config):
    """Merge CLI overrides onto *config* into a ``StreamConfig``.

    Raises ``ValueError`` if the bar limit cannot cover the profile's warm-up
    or exceeds what the exchange serves.
    """
    from quantai.market.binance_client import MAX_KLINE_LIMIT
    from quantai.models.stream_config import StreamConfig
    from quantai.strategy.profiles import get_profile

    strategy = args.strategy or config.default_strategy
    bar_limit = args.limit if args.limit is not None else config.bar_limit
    min_bars = get_profile(strategy).required_bars
    if not min_bars <= bar_limit <= MAX_KLINE_LIMIT:
        raise ValueError(
            f"--limit must be between {min_bars} and {MAX_KLINE_LIMIT} "
            f"for {strategy}, got {bar_limit}"
        )
    return StreamConfig(
        symbol=(args.symbol or config.default_symbol).upper(),
        interval=args.interval or config.default_interval,
        strategy=strategy,
        bar_limit=bar_limit,
        refresh_interval_seconds=config.refresh_interval_seconds,
    )


async def _run_analyze_once(engine) -> None:
    """Fetch, analyze and print a single snapshot."""
    from quantai.cli.dashboard import print_snapshot

    try:
        snapshot = await engine.run_once()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("%s analysis failed: %s", engine.stream_name, exc)
        return
    print_snapshot(snapshot)


async def _run_watch(engine) -> None:
    """Refresh on the configured cadence, printing every snapshot."""
    from quantai.cli.dashboard import print_snapshot

    logger.info("Watching %s.", engine.stream_name)
    await engine.run(on_snapshot=print_snapshot)
    logger.info("QuantAI watch stopped after %d cycle(s).", engine.cycle_count)


async def _run_server_and_engine(engine, port: int = 8080) -> None:
    """Start the API server and the refresh loop concurrently."""
    import uvicorn

    logger.info("Starting QuantAI API with stream %s.", engine.stream_name)

    uvi_config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(uvi_config)

    async def _run_server():
        await server.serve()
        engine.stop()

    async def _run_engine():
        await engine.run()

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(
        _run_server(),
        _run_engine(),
        return_exceptions=True,
    )
    logger.info("QuantAI stopped. Results: %s", results)


if __name__ == "__main__":
    _run_cli()
