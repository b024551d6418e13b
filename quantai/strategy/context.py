"""Context synthesis — the present-moment read of the market.

Turns the latest annotated bar plus the tail of the signal timeline into
an ``AnalysisSnapshot``: trend, volatility bucket, support/resistance,
recommended action with a decaying confidence, and a heuristic price
projection.  Pure functions, no I/O.
"""

from typing import Optional, Sequence

from quantai.strategy.models import (
    Action,
    AnalysisSnapshot,
    AnnotatedBar,
    SignalEvent,
    SignalKind,
    Strength,
    Trend,
    Volatility,
)
from quantai.strategy.signals import normalized_slope

# Support / resistance lookback, independent of the profile.
SR_LOOKBACK_BARS = 30
# Slope (% of price per bar) that alone classifies a trend.
TREND_SLOPE_CUTOFF = 0.05

# Bollinger width / price buckets.
BB_WIDTH_ELEVATED = 0.10
BB_WIDTH_COMPRESSED = 0.03
# ATR / price buckets, used while the bands are still warming up.
ATR_RATIO_ELEVATED = 0.025
ATR_RATIO_COMPRESSED = 0.0075

# Last event must be this recent (in bars) to drive the action.
SIGNAL_RECENCY_BARS = 20
BASE_CONFIDENCE = {
    Strength.STRONG: 92.0,
    Strength.MODERATE: 78.0,
    Strength.WEAK: 60.0,
}
CONFIDENCE_DECAY_PER_BAR = 1.0
CONFIDENCE_FLOOR = 50.0

# Heuristic projection, not a forecast: a 2% push through the band edge.
PROJECTION_PCT = 0.02

# Close within this fraction of a band edge counts as testing it.
BAND_PROXIMITY_PCT = 0.005
VOLUME_LOOKBACK_BARS = 20
HEAVY_VOLUME_RATIO = 1.5
TRENDING_ADX = 25.0


def classify_trend(bar: AnnotatedBar) -> Trend:
    """MA stack first (close > medium > slow), then the regression slope."""
    if bar.ma_medium is not None and bar.ma_slow is not None:
        if bar.close > bar.ma_medium > bar.ma_slow:
            return Trend.BULLISH
        if bar.close < bar.ma_medium < bar.ma_slow:
            return Trend.BEARISH

    slope = normalized_slope(bar)
    if slope is not None:
        if slope > TREND_SLOPE_CUTOFF:
            return Trend.BULLISH
        if slope < -TREND_SLOPE_CUTOFF:
            return Trend.BEARISH
    return Trend.NEUTRAL


def band_width_ratio(bar: AnnotatedBar) -> Optional[float]:
    """Bollinger band width as a fraction of the close."""
    if bar.bb_upper is None or bar.bb_lower is None or bar.close == 0:
        return None
    return (bar.bb_upper - bar.bb_lower) / bar.close


def classify_volatility(bar: AnnotatedBar) -> Volatility:
    width = band_width_ratio(bar)
    if width is not None:
        if width > BB_WIDTH_ELEVATED:
            return Volatility.ELEVATED
        if width < BB_WIDTH_COMPRESSED:
            return Volatility.COMPRESSED
        return Volatility.NORMAL

    if bar.atr is not None and bar.close != 0:
        ratio = bar.atr / bar.close
        if ratio > ATR_RATIO_ELEVATED:
            return Volatility.ELEVATED
        if ratio < ATR_RATIO_COMPRESSED:
            return Volatility.COMPRESSED
    return Volatility.NORMAL


def support_resistance(bars: Sequence[AnnotatedBar]) -> tuple[float, float]:
    """Lowest low and highest high over the trailing lookback window."""
    window = bars[-SR_LOOKBACK_BARS:]
    return min(b.low for b in window), max(b.high for b in window)


def recommend_action(
    bars: Sequence[AnnotatedBar],
    signals: Sequence[SignalEvent],
) -> tuple[Action, float, Optional[SignalEvent]]:
    """Action and confidence from the most recent event.

    An entry within the recency window sets the action to its side, an exit
    sets WAIT.  Confidence starts from the event's strength and loses a
    point per bar since it, never dropping below the floor.  Returns the
    driving event, or ``None`` when nothing recent exists.
    """
    if not signals:
        return Action.WAIT, CONFIDENCE_FLOOR, None

    last = signals[-1]
    index_by_time = {b.time: i for i, b in enumerate(bars)}
    event_index = index_by_time.get(last.time)
    if event_index is None:
        return Action.WAIT, CONFIDENCE_FLOOR, None

    bars_since = len(bars) - 1 - event_index
    if bars_since >= SIGNAL_RECENCY_BARS:
        return Action.WAIT, CONFIDENCE_FLOOR, None

    if last.kind == SignalKind.ENTRY_LONG:
        action = Action.LONG
    elif last.kind == SignalKind.ENTRY_SHORT:
        action = Action.SHORT
    else:
        action = Action.WAIT

    confidence = max(
        CONFIDENCE_FLOOR,
        BASE_CONFIDENCE[last.strength] - CONFIDENCE_DECAY_PER_BAR * bars_since,
    )
    return action, confidence, last


def project_price(action: Action, close: float, support: float, resistance: float) -> float:
    """Heuristic target: 2% beyond the band edge in the action's direction.

    This is a rule of thumb for display, not a model forecast.
    """
    if action == Action.LONG:
        return resistance * (1 + PROJECTION_PCT)
    if action == Action.SHORT:
        return support * (1 - PROJECTION_PCT)
    return close


def kline_pattern(close: float, support: float, resistance: float) -> str:
    pattern = "CONSOLIDATION"
    if close > resistance * (1 - BAND_PROXIMITY_PCT):
        pattern = "TESTING_RESISTANCE"
    if close < support * (1 + BAND_PROXIMITY_PCT):
        pattern = "TESTING_SUPPORT"
    return pattern


def volume_analysis(bars: Sequence[AnnotatedBar]) -> str:
    window = bars[-VOLUME_LOOKBACK_BARS:]
    mean_volume = sum(b.volume for b in window) / len(window)
    if mean_volume > 0 and bars[-1].volume > HEAVY_VOLUME_RATIO * mean_volume:
        return "HEAVY"
    return "NORMAL"


def _reasoning(
    trend: Trend,
    volatility: Volatility,
    width: Optional[float],
    driver: Optional[SignalEvent],
    signal_count: int,
    volume: str,
) -> str:
    if driver is not None:
        lead = (
            f"Latest signal {driver.kind.value} ({driver.strength.value}) "
            f"on {driver.reason}."
        )
    elif signal_count:
        lead = "No recent signal; the last event is outside the recency window."
    else:
        lead = "No signals in the visible history."
    width_text = f"{width * 100:.2f}%" if width is not None else "n/a"
    return (
        f"{lead} Trend {trend.value.lower()}, band width {width_text} "
        f"({volatility.value.lower()} volatility), {volume.lower()} volume."
    )


def synthesize(
    bars: Sequence[AnnotatedBar],
    signals: Sequence[SignalEvent],
    *,
    symbol: str = "",
    interval: str = "",
    strategy: str = "",
) -> AnalysisSnapshot:
    """Build the snapshot for the latest bar in *bars*.

    *bars* must be non-empty.  The snapshot timestamp is the latest bar's
    time, so identical inputs give identical snapshots.
    """
    if not bars:
        raise ValueError("synthesize needs at least one bar")

    current = bars[-1]
    trend = classify_trend(current)
    volatility = classify_volatility(current)
    support, resistance = support_resistance(bars)
    action, confidence, driver = recommend_action(bars, signals)
    volume = volume_analysis(bars)

    return AnalysisSnapshot(
        symbol=symbol,
        interval=interval,
        strategy=strategy,
        timestamp=current.time,
        trend=trend,
        volatility=volatility,
        support_level=support,
        resistance_level=resistance,
        momentum_score=current.rsi if current.rsi is not None else 50.0,
        action=action,
        confidence=confidence,
        predicted_price=project_price(action, current.close, support, resistance),
        reasoning=_reasoning(
            trend, volatility, band_width_ratio(current), driver, len(signals), volume,
        ),
        kline_pattern=kline_pattern(current.close, support, resistance),
        volume_analysis=volume,
        trend_strength=(
            "TRENDING"
            if current.adx is not None and current.adx > TRENDING_ADX
            else "RANGING"
        ),
        signals=tuple(signals),
    )
