"""Tests for quantai.market — Binance client with mocked HTTP responses."""

import httpx
import pytest

from quantai.market import binance_client
from quantai.market.binance_client import BinanceClient, parse_klines
from quantai.strategy.models import Bar

# ── Mock Binance responses ───────────────────────────────────────────────


def _kline(open_time, o, h, l, c, v):
    return [open_time, str(o), str(h), str(l), str(c), str(v),
            open_time + 59_999, "0", 10, "0", "0", "0"]


MOCK_KLINES = [
    _kline(1_700_000_060_000, 101.0, 103.0, 100.5, 102.5, 12.5),
    _kline(1_700_000_000_000, 100.0, 101.5, 99.0, 101.0, 20.0),
    _kline(1_700_000_060_000, 999.0, 999.0, 999.0, 999.0, 1.0),
]


@pytest.fixture
def no_sleep(monkeypatch):
    async def _sleep(_delay):
        return None

    monkeypatch.setattr(binance_client.asyncio, "sleep", _sleep)


# ── Parsing ──────────────────────────────────────────────────────────────


class TestParseKlines:
    def test_sorted_and_deduplicated(self):
        bars = parse_klines(MOCK_KLINES)
        assert [b.time for b in bars] == [1_700_000_000_000, 1_700_000_060_000]
        # first occurrence of a repeated timestamp wins
        assert bars[1].close == pytest.approx(102.5)

    def test_fields(self):
        bar = parse_klines(MOCK_KLINES)[0]
        assert isinstance(bar, Bar)
        assert bar.open == pytest.approx(100.0)
        assert bar.high == pytest.approx(101.5)
        assert bar.low == pytest.approx(99.0)
        assert bar.volume == pytest.approx(20.0)

    def test_empty(self):
        assert parse_klines([]) == []


# ── Fetching ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_bars(monkeypatch):
    """Request goes to /api/v3/klines with symbol, interval and limit."""
    seen = {}

    async def _mock_get(self, url, *, params=None, timeout=None):
        seen["url"] = url
        seen["params"] = params
        return httpx.Response(200, json=MOCK_KLINES, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    client = BinanceClient("https://api.binance.com/")
    bars = await client.fetch_bars("btcusdt", "1h", limit=2)
    assert len(bars) == 2
    assert seen["url"] == "https://api.binance.com/api/v3/klines"
    assert seen["params"] == {"symbol": "BTCUSDT", "interval": "1h", "limit": 2}


@pytest.mark.asyncio
async def test_fetch_bars_rejects_bad_interval():
    with pytest.raises(ValueError, match="interval"):
        await BinanceClient().fetch_bars("BTCUSDT", "7m")


@pytest.mark.asyncio
async def test_fetch_bars_rejects_bad_limit():
    with pytest.raises(ValueError, match="limit"):
        await BinanceClient().fetch_bars("BTCUSDT", "1h", limit=1001)


@pytest.mark.asyncio
async def test_retries_on_503(monkeypatch, no_sleep):
    calls = []

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls.append(url)
        status = 503 if len(calls) == 1 else 200
        body = {} if status == 503 else MOCK_KLINES
        return httpx.Response(status, json=body, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    bars = await BinanceClient().fetch_bars("BTCUSDT", "1h", limit=2)
    assert len(calls) == 2
    assert len(bars) == 2


@pytest.mark.asyncio
async def test_client_error_not_retried(monkeypatch, no_sleep):
    calls = []

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls.append(url)
        return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."},
                              request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.HTTPStatusError):
        await BinanceClient().fetch_bars("NOPE", "1h")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_transport_error_exhausts_retries(monkeypatch, no_sleep):
    calls = []

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls.append(url)
        raise httpx.ConnectError("connection refused", request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(httpx.ConnectError):
        await BinanceClient().fetch_bars("BTCUSDT", "1h")
    assert len(calls) == 3
