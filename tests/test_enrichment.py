"""Tests for quantai.strategy.enrichment — indicator attachment per profile."""

import math
from dataclasses import replace

import pytest

from quantai.strategy.enrichment import enrich
from quantai.strategy.indicators import calculate_rsi, calculate_sma
from quantai.strategy.models import AnnotatedBar, Bar, InvalidProfile
from quantai.strategy.profiles import SCALPING, SWING


def _make_wave(n=150):
    """Oscillating series with a mild drift and varying volume."""
    bars = []
    for i in range(n):
        close = 100.0 + 8.0 * math.sin(i / 6.0) + 0.05 * i
        bars.append(
            Bar(
                time=1_700_000_000_000 + i * 3_600_000,
                open=close - 0.3,
                high=close + 1.0,
                low=close - 1.2,
                close=close,
                volume=100.0 + 40.0 * math.cos(i / 3.0),
            )
        )
    return bars


class TestEnrich:
    def test_empty_input(self):
        assert enrich([], SWING) == []

    def test_length_and_ohlcv_preserved(self):
        bars = _make_wave(120)
        annotated = enrich(bars, SWING)
        assert len(annotated) == 120
        assert all(isinstance(a, AnnotatedBar) for a in annotated)
        for raw, ann in zip(bars, annotated):
            assert (ann.time, ann.open, ann.high, ann.low, ann.close, ann.volume) == (
                raw.time, raw.open, raw.high, raw.low, raw.close, raw.volume,
            )

    def test_values_come_from_indicator_functions(self):
        bars = _make_wave(120)
        annotated = enrich(bars, SWING)
        closes = [b.close for b in bars]
        assert [a.ma_medium for a in annotated] == calculate_sma(closes, SWING.ma_medium)
        assert [a.rsi for a in annotated] == calculate_rsi(closes, SWING.rsi_period)

    def test_warmup_is_absent_not_zero(self):
        annotated = enrich(_make_wave(120), SWING)
        assert annotated[97].ma_slow is None
        assert annotated[98].ma_slow is not None
        assert annotated[13].rsi is None
        assert annotated[14].rsi is not None
        assert annotated[12].lin_reg_slope is None
        assert annotated[-1].adx is not None

    def test_profile_periods_change_values(self):
        bars = _make_wave(120)
        swing = enrich(bars, SWING)
        scalp = enrich(bars, SCALPING)
        assert swing[-1].ma_fast != scalp[-1].ma_fast
        assert scalp[29].ma_slow is not None
        assert swing[29].ma_slow is None

    def test_deterministic(self):
        bars = _make_wave(120)
        assert enrich(bars, SWING) == enrich(bars, SWING)

    def test_causal(self):
        """Appending bars never changes earlier annotations."""
        bars = _make_wave(150)
        full = enrich(bars, SWING)
        prefix = enrich(bars[:110], SWING)
        assert full[:110] == prefix

    def test_invalid_profile_rejected_before_work(self):
        bad = replace(SWING, ma_fast=0)
        with pytest.raises(InvalidProfile):
            enrich([], bad)
