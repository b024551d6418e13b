"""Strategy profiles — named indicator periods and signal-engine thresholds.

Used by the enrichment pipeline (periods) and the signal engine (risk and
confluence thresholds).  ``get_profile`` looks presets up by name.
"""

from dataclasses import dataclass
from enum import Enum

from quantai.strategy.indicators import LIN_REG_PERIOD
from quantai.strategy.models import InvalidProfile

# The signal scan never starts before this bar index.
MIN_HISTORY_BARS = 50


class ProfileKind(str, Enum):
    """Rule-set selector for the signal engine."""

    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    CONSERVATIVE = "conservative"


@dataclass(frozen=True)
class StrategyProfile:
    """Immutable parameter set for one pipeline run.

    Slope thresholds are in percent of price per bar (the linear-regression
    slope divided by close, times 100).
    """

    name: str
    kind: ProfileKind

    # Indicator periods
    ma_fast: int = 7
    ma_medium: int = 25
    ma_slow: int = 99
    rsi_period: int = 14
    bb_period: int = 20
    bb_multiplier: float = 2.0
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    kdj_period: int = 9
    atr_period: int = 14
    adx_period: int = 14
    williams_period: int = 14
    stoch_period: int = 14
    stoch_smooth: int = 3

    # Risk
    stop_loss_atr_mult: float = 2.0
    take_profit_atr_mult: float = 3.0
    trailing_activation_atr_mult: float = 1.5

    # Confluence thresholds
    trend_slope_threshold: float = 0.05
    adx_threshold: float = 25.0
    volume_surge_ratio: float = 1.5
    rsi_trend_low: float = 45.0
    rsi_trend_high: float = 70.0
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    cooldown_bars: int = 5

    @property
    def warmup_bars(self) -> int:
        """Bars needed before every indicator this profile uses is present."""
        return max(
            self.ma_slow,
            self.rsi_period + 1,
            self.bb_period,
            self.macd_slow,
            self.kdj_period,
            self.atr_period,
            2 * self.adx_period,
            self.williams_period,
            self.stoch_period + 2 * self.stoch_smooth - 2,
            LIN_REG_PERIOD,
        )

    @property
    def required_bars(self) -> int:
        """Fewest bars for which the signal scan evaluates at least one bar."""
        return max(self.warmup_bars, MIN_HISTORY_BARS) + 1

    def validate(self) -> None:
        """Raise ``InvalidProfile`` if any parameter is unusable."""
        periods = {
            "ma_fast": self.ma_fast,
            "ma_medium": self.ma_medium,
            "ma_slow": self.ma_slow,
            "rsi_period": self.rsi_period,
            "bb_period": self.bb_period,
            "macd_fast": self.macd_fast,
            "macd_slow": self.macd_slow,
            "macd_signal": self.macd_signal,
            "kdj_period": self.kdj_period,
            "atr_period": self.atr_period,
            "adx_period": self.adx_period,
            "williams_period": self.williams_period,
            "stoch_period": self.stoch_period,
            "stoch_smooth": self.stoch_smooth,
        }
        bad = [name for name, value in periods.items() if int(value) != value or value < 1]
        if bad:
            raise InvalidProfile(
                f"Profile '{self.name}': periods must be positive integers: {', '.join(bad)}"
            )

        positive = {
            "bb_multiplier": self.bb_multiplier,
            "stop_loss_atr_mult": self.stop_loss_atr_mult,
            "take_profit_atr_mult": self.take_profit_atr_mult,
            "trailing_activation_atr_mult": self.trailing_activation_atr_mult,
            "volume_surge_ratio": self.volume_surge_ratio,
        }
        bad = [name for name, value in positive.items() if not value > 0]
        if bad:
            raise InvalidProfile(
                f"Profile '{self.name}': multipliers must be > 0: {', '.join(bad)}"
            )

        if self.trend_slope_threshold < 0 or self.adx_threshold < 0:
            raise InvalidProfile(f"Profile '{self.name}': thresholds must be >= 0")
        if self.cooldown_bars < 0:
            raise InvalidProfile(f"Profile '{self.name}': cooldown_bars must be >= 0")
        if not self.ma_fast < self.ma_medium < self.ma_slow:
            raise InvalidProfile(
                f"Profile '{self.name}': need ma_fast < ma_medium < ma_slow, got "
                f"{self.ma_fast}/{self.ma_medium}/{self.ma_slow}"
            )
        if not self.macd_fast < self.macd_slow:
            raise InvalidProfile(
                f"Profile '{self.name}': macd_fast must be below macd_slow"
            )
        if not 0 <= self.rsi_trend_low < self.rsi_trend_high <= 100:
            raise InvalidProfile(f"Profile '{self.name}': invalid RSI trend band")
        if not 0 <= self.rsi_oversold < self.rsi_overbought <= 100:
            raise InvalidProfile(f"Profile '{self.name}': invalid RSI extremes")


# ── Presets ──────────────────────────────────────────────────────────────
# Indicator periods follow the classic scalping / swing / position
# settings.  Risk and threshold values scale with how much confirmation
# each style wants.

SCALPING = StrategyProfile(
    name="SCALPING",
    kind=ProfileKind.AGGRESSIVE,
    ma_fast=5,
    ma_medium=10,
    ma_slow=30,
    rsi_period=6,
    macd_fast=5,
    macd_slow=15,
    macd_signal=5,
    stoch_period=9,
    stop_loss_atr_mult=1.5,
    take_profit_atr_mult=2.0,
    trailing_activation_atr_mult=1.0,
    trend_slope_threshold=0.08,
    adx_threshold=20.0,
    volume_surge_ratio=1.5,
    rsi_trend_low=40.0,
    rsi_trend_high=75.0,
    rsi_oversold=25.0,
    rsi_overbought=75.0,
    cooldown_bars=3,
)

SWING = StrategyProfile(name="SWING", kind=ProfileKind.BALANCED)

CONSERVATIVE = StrategyProfile(
    name="CONSERVATIVE",
    kind=ProfileKind.CONSERVATIVE,
    ma_fast=20,
    ma_medium=50,
    ma_slow=200,
    rsi_period=21,
    bb_multiplier=2.5,
    macd_fast=24,
    macd_slow=52,
    macd_signal=18,
    kdj_period=14,
    atr_period=21,
    williams_period=21,
    stoch_period=21,
    stoch_smooth=5,
    stop_loss_atr_mult=2.5,
    take_profit_atr_mult=4.0,
    trailing_activation_atr_mult=2.0,
    trend_slope_threshold=0.03,
    adx_threshold=30.0,
    volume_surge_ratio=2.0,
    rsi_trend_low=50.0,
    rsi_trend_high=65.0,
    cooldown_bars=10,
)


PROFILE_REGISTRY: dict[str, StrategyProfile] = {
    p.name: p for p in (SCALPING, SWING, CONSERVATIVE)
}

DEFAULT_PROFILE = SWING.name


def get_profile(name: str) -> StrategyProfile:
    """Look up a preset by name (case-insensitive).

    Raises ``KeyError`` if the profile name is not registered.
    """
    key = name.upper()
    if key not in PROFILE_REGISTRY:
        raise KeyError(
            f"Unknown strategy profile '{name}'. "
            f"Available: {', '.join(PROFILE_REGISTRY.keys())}"
        )
    return PROFILE_REGISTRY[key]
