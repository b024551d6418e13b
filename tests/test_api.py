"""Tests for the internal API — /health, /profiles, /analysis, /snapshot."""

import math
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from quantai.api.routers import clear_snapshots, configure_routers, update_snapshot
from quantai.main import app
from quantai.strategy.analysis import run_pipeline
from quantai.strategy.models import Bar
from quantai.strategy.profiles import SWING

client = TestClient(app)


def _make_bars(n=150):
    return [
        Bar(
            time=1_700_000_000_000 + i * 3_600_000,
            open=30_000.0 + 400.0 * math.sin(i / 8.0),
            high=30_150.0 + 400.0 * math.sin(i / 8.0),
            low=29_850.0 + 400.0 * math.sin(i / 8.0),
            close=30_050.0 + 400.0 * math.sin(i / 8.0),
            volume=25.0 + 5.0 * math.cos(i / 4.0),
        )
        for i in range(n)
    ]


def _make_provider(bars=None, error=None):
    provider = MagicMock()
    if error is not None:
        provider.fetch_bars = AsyncMock(side_effect=error)
    else:
        provider.fetch_bars = AsyncMock(return_value=bars if bars is not None else _make_bars())
    return provider


@pytest.fixture(autouse=True)
def _reset_state():
    clear_snapshots()
    yield
    configure_routers(client=None)
    clear_snapshots()


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


class TestProfilesEndpoint:
    def test_lists_presets(self):
        data = client.get("/profiles").json()
        assert data["default"] == "SWING"
        names = [p["name"] for p in data["profiles"]]
        assert names == ["SCALPING", "SWING", "CONSERVATIVE"]
        swing = data["profiles"][1]
        assert swing["kind"] == "balanced"
        assert swing["ma_slow"] == 99
        assert swing["warmup_bars"] == 99
        assert swing["required_bars"] == 100


class TestAnalysisEndpoint:
    def test_returns_snapshot(self):
        provider = _make_provider()
        configure_routers(client=provider)
        resp = client.get("/analysis", params={"symbol": "btcusdt", "interval": "1h"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["symbol"] == "BTCUSDT"
        assert data["interval"] == "1h"
        assert data["strategy"] == "SWING"
        assert data["action"] in ("LONG", "SHORT", "WAIT")
        assert data["timestamp"] == _make_bars()[-1].time
        provider.fetch_bars.assert_awaited_once_with("btcusdt", "1h", 500)

    def test_matches_direct_pipeline(self):
        bars = _make_bars()
        configure_routers(client=_make_provider(bars))
        data = client.get("/analysis", params={"symbol": "BTCUSDT", "strategy": "swing"}).json()
        expected = run_pipeline("BTCUSDT", "1h", bars, SWING).to_dict()
        assert data["confidence"] == pytest.approx(expected["confidence"])
        assert data["action"] == expected["action"]
        assert len(data["signals"]) == len(expected["signals"])

    def test_unknown_strategy(self):
        configure_routers(client=_make_provider())
        resp = client.get("/analysis", params={"strategy": "DAYTRADE"})
        assert resp.status_code == 400
        assert "Available" in resp.json()["detail"]

    def test_unknown_interval(self):
        configure_routers(client=_make_provider())
        resp = client.get("/analysis", params={"interval": "7m"})
        assert resp.status_code == 400

    def test_limit_below_history_floor(self):
        configure_routers(client=_make_provider())
        resp = client.get("/analysis", params={"limit": 10})
        assert resp.status_code == 422

    def test_short_history(self):
        configure_routers(client=_make_provider(_make_bars(30)))
        resp = client.get("/analysis")
        assert resp.status_code == 422
        assert "100" in resp.json()["detail"]

    def test_limit_below_profile_warmup(self):
        provider = _make_provider()
        configure_routers(client=provider)
        resp = client.get("/analysis", params={"strategy": "CONSERVATIVE", "limit": 200})
        assert resp.status_code == 422
        assert "201" in resp.json()["detail"]
        provider.fetch_bars.assert_not_awaited()

    def test_conservative_short_fetch(self):
        configure_routers(client=_make_provider(_make_bars(200)))
        resp = client.get("/analysis", params={"strategy": "CONSERVATIVE"})
        assert resp.status_code == 422
        assert "201" in resp.json()["detail"]

    def test_provider_failure(self):
        configure_routers(client=_make_provider(error=httpx.ConnectError("down")))
        resp = client.get("/analysis")
        assert resp.status_code == 502

    def test_no_provider(self):
        resp = client.get("/analysis")
        assert resp.status_code == 503


class TestSnapshotEndpoint:
    def test_missing_stream(self):
        resp = client.get("/snapshot", params={"stream": "BTCUSDT:1h:SWING"})
        assert resp.status_code == 404

    def test_published_snapshot(self):
        snap = run_pipeline("BTCUSDT", "1h", _make_bars(), SWING)
        update_snapshot("BTCUSDT:1h:SWING", snap)
        resp = client.get("/snapshot", params={"stream": "BTCUSDT:1h:SWING"})
        assert resp.status_code == 200
        assert resp.json()["timestamp"] == snap.timestamp

    def test_all_snapshots(self):
        snap = run_pipeline("BTCUSDT", "1h", _make_bars(), SWING)
        update_snapshot("a", snap)
        update_snapshot("b", snap)
        data = client.get("/snapshot").json()
        assert set(data["snapshots"]) == {"a", "b"}
