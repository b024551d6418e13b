"""Tests for quantai.strategy.profiles — presets, lookup and validation."""

from dataclasses import replace

import pytest

from quantai.strategy.models import InvalidProfile
from quantai.strategy.profiles import (
    CONSERVATIVE,
    DEFAULT_PROFILE,
    PROFILE_REGISTRY,
    SCALPING,
    SWING,
    ProfileKind,
    get_profile,
)
from quantai.strategy.signals import scan_start_index


class TestRegistry:
    def test_presets_registered(self):
        assert set(PROFILE_REGISTRY) == {"SCALPING", "SWING", "CONSERVATIVE"}
        assert DEFAULT_PROFILE == "SWING"

    def test_lookup_is_case_insensitive(self):
        assert get_profile("scalping") is SCALPING
        assert get_profile("Swing") is SWING

    def test_unknown_profile(self):
        with pytest.raises(KeyError, match="Available"):
            get_profile("DAYTRADE")

    def test_kinds(self):
        assert SCALPING.kind == ProfileKind.AGGRESSIVE
        assert SWING.kind == ProfileKind.BALANCED
        assert CONSERVATIVE.kind == ProfileKind.CONSERVATIVE

    @pytest.mark.parametrize("profile", [SCALPING, SWING, CONSERVATIVE])
    def test_presets_validate(self, profile):
        profile.validate()


class TestWarmup:
    def test_warmup_bars(self):
        assert SWING.warmup_bars == 99
        assert SCALPING.warmup_bars == 30
        assert CONSERVATIVE.warmup_bars == 200

    def test_scan_never_starts_before_history_floor(self):
        assert scan_start_index(SCALPING) == 50
        assert scan_start_index(SWING) == 99
        assert scan_start_index(CONSERVATIVE) == 200

    def test_required_bars_leave_one_bar_to_scan(self):
        assert SCALPING.required_bars == 51
        assert SWING.required_bars == 100
        assert CONSERVATIVE.required_bars == 201


class TestValidate:
    def test_invalid_profile_is_value_error(self):
        assert issubclass(InvalidProfile, ValueError)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("ma_fast", 0),
            ("rsi_period", -3),
            ("atr_period", 0),
            ("stoch_smooth", 0),
        ],
    )
    def test_non_positive_period(self, field, value):
        with pytest.raises(InvalidProfile, match=field):
            replace(SWING, **{field: value}).validate()

    def test_non_positive_multiplier(self):
        with pytest.raises(InvalidProfile, match="stop_loss_atr_mult"):
            replace(SWING, stop_loss_atr_mult=0.0).validate()

    def test_ma_order(self):
        with pytest.raises(InvalidProfile, match="ma_fast < ma_medium < ma_slow"):
            replace(SWING, ma_medium=120).validate()

    def test_macd_order(self):
        with pytest.raises(InvalidProfile, match="macd_fast"):
            replace(SWING, macd_fast=30).validate()

    def test_rsi_band(self):
        with pytest.raises(InvalidProfile, match="RSI trend band"):
            replace(SWING, rsi_trend_low=80.0).validate()

    def test_negative_cooldown(self):
        with pytest.raises(InvalidProfile, match="cooldown"):
            replace(SWING, cooldown_bars=-1).validate()
