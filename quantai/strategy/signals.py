"""Signal engine — single-pass scan over annotated bars, pure functions, no I/O.

Walks the bars left to right holding at most one open position:

1. With a position open, the trailing stop is ratcheted and the bar is
   checked against the stop and the target.  An exit ends the bar.
2. When flat and out of cooldown, the profile's confluence rules are
   tried in order; the first match opens a position at the close with
   ATR-based stop and target.

Nothing survives the call: the position and cooldown bookkeeping are
local to ``generate_signals``.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from quantai.risk.sl_tp import calculate_atr_risk
from quantai.risk.trailing_stop import trail_position
from quantai.strategy.models import (
    AnnotatedBar,
    PositionState,
    Side,
    SignalEvent,
    SignalKind,
    Strength,
)
from quantai.strategy.profiles import ProfileKind, StrategyProfile

logger = logging.getLogger("quantai")


# ── Strength scoring ─────────────────────────────────────────────────────
# Additive confluence score.  Trend points need |slope| >= threshold, the
# full amount at twice the threshold.

TREND_SCORE_FULL = 1.5
TREND_SCORE_PARTIAL = 0.75
VOLUME_SCORE = 1.0
MOMENTUM_SCORE = 1.0
ADX_SCORE = 1.0

STRONG_CUTOFF = 3.5
MODERATE_CUTOFF = 2.0

# RSI sweet spot for longs; shorts use the mirror image around 50.
MOMENTUM_SWEET_SPOT = (50.0, 65.0)

# Exits are reported with a fixed strength.
EXIT_STRENGTH = Strength.MODERATE

# Moving-average crosses only need volume picking up, not a full surge.
CROSS_VOLUME_RATIO = 1.2


class RuleMode(str, Enum):
    TREND = "trend"
    PULLBACK = "pullback"
    REVERSAL = "reversal"
    BREAKOUT = "breakout"
    MA_CROSS = "ma_cross"


@dataclass(frozen=True)
class ConfluenceRule:
    """One entry rule; ``name`` is the first reason code it emits."""

    name: str
    mode: RuleMode


TREND_CONTINUATION = ConfluenceRule("TREND_CONTINUATION", RuleMode.TREND)
TREND_PULLBACK = ConfluenceRule("TREND_PULLBACK", RuleMode.PULLBACK)
MOMENTUM_REVERSAL = ConfluenceRule("MOMENTUM_REVERSAL", RuleMode.REVERSAL)
BOLLINGER_BREAKOUT = ConfluenceRule("BOLLINGER_BREAKOUT", RuleMode.BREAKOUT)
MA_CROSS_MOMENTUM = ConfluenceRule("MA_CROSS_MOMENTUM", RuleMode.MA_CROSS)

RULE_SETS: dict[ProfileKind, tuple[ConfluenceRule, ...]] = {
    ProfileKind.AGGRESSIVE: (TREND_CONTINUATION, MOMENTUM_REVERSAL, MA_CROSS_MOMENTUM),
    ProfileKind.BALANCED: (TREND_PULLBACK, TREND_CONTINUATION, MA_CROSS_MOMENTUM),
    ProfileKind.CONSERVATIVE: (BOLLINGER_BREAKOUT, TREND_CONTINUATION, MA_CROSS_MOMENTUM),
}


# ── Bar-level measurements ───────────────────────────────────────────────


def normalized_slope(bar: AnnotatedBar) -> Optional[float]:
    """Linear-regression slope as percent of price per bar."""
    if bar.lin_reg_slope is None or bar.close == 0:
        return None
    return bar.lin_reg_slope / bar.close * 100.0


def volume_ratio(bar: AnnotatedBar, prev: AnnotatedBar) -> float:
    """Current volume over previous-bar volume (a zero previous counts as 1)."""
    return bar.volume / (prev.volume or 1.0)


def _sign(side: Side) -> float:
    return 1.0 if side == Side.LONG else -1.0


# ── Rule evaluation ──────────────────────────────────────────────────────


def _match_side(
    rule: ConfluenceRule,
    side: Side,
    bar: AnnotatedBar,
    prev: AnnotatedBar,
    profile: StrategyProfile,
) -> Optional[tuple[str, ...]]:
    """Reason codes if *rule* fires for *side* on *bar*, else ``None``."""
    slope = normalized_slope(bar)
    if slope is None or bar.rsi is None or bar.ma_slow is None:
        return None

    sign = _sign(side)
    long_side = side == Side.LONG
    threshold = profile.trend_slope_threshold
    reasons: list[str] = [rule.name]

    # Slope (crosses carry their own direction)
    if rule.mode == RuleMode.REVERSAL:
        if sign * slope <= -2 * threshold:
            return None
        reasons.append("SLOPE_FLATTENING")
    elif rule.mode != RuleMode.MA_CROSS:
        if sign * slope < threshold:
            return None
        reasons.append("SLOPE_UP" if long_side else "SLOPE_DOWN")

    # Momentum
    if rule.mode == RuleMode.REVERSAL:
        if bar.k is None or bar.d is None:
            return None
        if long_side and bar.rsi <= profile.rsi_oversold and bar.k > bar.d:
            reasons += ["RSI_OVERSOLD", "KDJ_CROSS_UP"]
        elif not long_side and bar.rsi >= profile.rsi_overbought and bar.k < bar.d:
            reasons += ["RSI_OVERBOUGHT", "KDJ_CROSS_DOWN"]
        else:
            return None
    elif rule.mode == RuleMode.MA_CROSS:
        if long_side and bar.rsi > 50.0:
            reasons.append("RSI_ABOVE_MID")
        elif not long_side and bar.rsi < 50.0:
            reasons.append("RSI_BELOW_MID")
        else:
            return None
    elif rule.mode != RuleMode.BREAKOUT:
        if long_side:
            low, high = profile.rsi_trend_low, profile.rsi_trend_high
        else:
            low, high = 100.0 - profile.rsi_trend_high, 100.0 - profile.rsi_trend_low
        if not low <= bar.rsi <= high:
            return None
        reasons.append("RSI_IN_BAND")

    # Pullback to the medium MA and back across it
    if rule.mode == RuleMode.PULLBACK:
        if prev.ma_medium is None or bar.ma_medium is None:
            return None
        if long_side and prev.low <= prev.ma_medium and bar.close > bar.ma_medium:
            reasons.append("MEDIUM_MA_RECLAIMED")
        elif not long_side and prev.high >= prev.ma_medium and bar.close < bar.ma_medium:
            reasons.append("MEDIUM_MA_LOST")
        else:
            return None

    # Close outside the Bollinger band
    if rule.mode == RuleMode.BREAKOUT:
        if bar.bb_upper is None or bar.bb_lower is None:
            return None
        if long_side and bar.close > bar.bb_upper:
            reasons.append("CLOSE_ABOVE_UPPER_BAND")
        elif not long_side and bar.close < bar.bb_lower:
            reasons.append("CLOSE_BELOW_LOWER_BAND")
        else:
            return None

    # Fast MA crossing the medium MA on this bar
    if rule.mode == RuleMode.MA_CROSS:
        if None in (prev.ma_fast, prev.ma_medium, bar.ma_fast, bar.ma_medium):
            return None
        if long_side and prev.ma_fast < prev.ma_medium and bar.ma_fast > bar.ma_medium:
            reasons.append("GOLDEN_CROSS")
        elif not long_side and prev.ma_fast > prev.ma_medium and bar.ma_fast < bar.ma_medium:
            reasons.append("DEATH_CROSS")
        else:
            return None

    # Trend strength or participation
    ratio = volume_ratio(bar, prev)
    if rule.mode == RuleMode.BREAKOUT:
        if ratio < profile.volume_surge_ratio:
            return None
        reasons.append("VOLUME_SURGE")
    elif rule.mode == RuleMode.MA_CROSS:
        if ratio < CROSS_VOLUME_RATIO:
            return None
        reasons.append("VOLUME_RISING")
        return tuple(reasons)
    elif bar.adx is not None and bar.adx >= profile.adx_threshold:
        reasons.append("ADX_CONFIRMED")
    elif ratio >= profile.volume_surge_ratio:
        reasons.append("VOLUME_SURGE")
    else:
        return None

    # Position against the slow MA: with the trend, or stretched for reversals
    above = bar.close > bar.ma_slow
    below = bar.close < bar.ma_slow
    want_above = long_side != (rule.mode == RuleMode.REVERSAL)
    if want_above and above:
        reasons.append("ABOVE_SLOW_MA")
    elif not want_above and below:
        reasons.append("BELOW_SLOW_MA")
    else:
        return None

    return tuple(reasons)


def match_entry(
    bar: AnnotatedBar,
    prev: AnnotatedBar,
    profile: StrategyProfile,
) -> Optional[tuple[Side, tuple[str, ...]]]:
    """Try the profile's rules in order; the first hit decides the side."""
    if bar.atr is None or bar.atr <= 0:
        return None
    for rule in RULE_SETS[profile.kind]:
        for side in (Side.LONG, Side.SHORT):
            reasons = _match_side(rule, side, bar, prev, profile)
            if reasons is not None:
                return side, reasons
    return None


def score_entry(
    side: Side,
    bar: AnnotatedBar,
    prev: AnnotatedBar,
    profile: StrategyProfile,
) -> float:
    """Additive confluence score for an entry on *bar*."""
    score = 0.0
    sign = _sign(side)

    slope = normalized_slope(bar)
    if slope is not None:
        directional = sign * slope
        if directional >= 2 * profile.trend_slope_threshold:
            score += TREND_SCORE_FULL
        elif directional >= profile.trend_slope_threshold:
            score += TREND_SCORE_PARTIAL

    if volume_ratio(bar, prev) >= profile.volume_surge_ratio:
        score += VOLUME_SCORE

    if bar.rsi is not None:
        low, high = MOMENTUM_SWEET_SPOT
        if side == Side.SHORT:
            low, high = 100.0 - high, 100.0 - low
        if low <= bar.rsi <= high:
            score += MOMENTUM_SCORE

    if bar.adx is not None and bar.adx >= profile.adx_threshold:
        score += ADX_SCORE

    return score


def classify_strength(score: float) -> Strength:
    if score >= STRONG_CUTOFF:
        return Strength.STRONG
    if score >= MODERATE_CUTOFF:
        return Strength.MODERATE
    return Strength.WEAK


# ── Exits ────────────────────────────────────────────────────────────────


def check_exit(
    position: PositionState,
    bar: AnnotatedBar,
    strategy: str,
) -> Optional[SignalEvent]:
    """Exit event if *bar* trades through the stop or the target.

    When both are touched in one bar the stop is assumed first.
    """
    if position.side == Side.LONG:
        stop_hit = bar.low <= position.stop_loss
        target_hit = bar.high >= position.take_profit
    else:
        stop_hit = bar.high >= position.stop_loss
        target_hit = bar.low <= position.take_profit

    if stop_hit:
        reason = "TRAILING_STOP" if position.stop_in_profit else "STOP_LOSS"
        return SignalEvent(
            time=bar.time,
            price=position.stop_loss,
            kind=SignalKind.EXIT_STOP_LOSS,
            closing_side=position.side,
            reason_codes=(reason,),
            strategy=strategy,
            strength=EXIT_STRENGTH,
        )
    if target_hit:
        return SignalEvent(
            time=bar.time,
            price=position.take_profit,
            kind=SignalKind.EXIT_TAKE_PROFIT,
            closing_side=position.side,
            reason_codes=("TAKE_PROFIT",),
            strategy=strategy,
            strength=EXIT_STRENGTH,
        )
    return None


# ── Scan ─────────────────────────────────────────────────────────────────


def scan_start_index(profile: StrategyProfile) -> int:
    """First bar the scan evaluates: past every warm-up and the history floor."""
    return profile.required_bars - 1


def generate_signals(
    bars: Sequence[AnnotatedBar],
    profile: StrategyProfile,
) -> list[SignalEvent]:
    """Produce the chronological signal timeline for *bars*.

    Args:
        bars: Enriched bars, oldest-first, computed with *profile*.
        profile: Strategy profile supplying rules and risk parameters.

    Returns:
        Entry and exit events in time order.  An empty list is a valid
        result.

    Raises ``InvalidProfile`` if *profile* is unusable.
    """
    profile.validate()

    events: list[SignalEvent] = []
    position: Optional[PositionState] = None
    last_event_index: Optional[int] = None

    for i in range(scan_start_index(profile), len(bars)):
        bar = bars[i]
        prev = bars[i - 1]

        # 1. Manage the open position
        if position is not None:
            position = trail_position(
                position,
                bar,
                bar.atr,
                profile.trailing_activation_atr_mult,
                profile.stop_loss_atr_mult,
            )
            exit_event = check_exit(position, bar, profile.name)
            if exit_event is not None:
                logger.debug(
                    "%s: %s %s at %.5f (%s)",
                    profile.name, exit_event.kind.value,
                    position.side.value, exit_event.price, exit_event.reason,
                )
                events.append(exit_event)
                position = None
                last_event_index = i
            continue

        # 2. Cooldown since the last event
        if last_event_index is not None and i - last_event_index < profile.cooldown_bars:
            continue

        # 3. Entry rules
        match = match_entry(bar, prev, profile)
        if match is None:
            continue
        side, reasons = match

        strength = classify_strength(score_entry(side, bar, prev, profile))
        if strength == Strength.WEAK and profile.kind != ProfileKind.AGGRESSIVE:
            continue

        levels = calculate_atr_risk(
            bar.close,
            side,
            bar.atr,
            profile.stop_loss_atr_mult,
            profile.take_profit_atr_mult,
        )
        position = PositionState(
            side=side,
            entry_price=bar.close,
            stop_loss=levels.sl,
            take_profit=levels.tp,
            highest_since_entry=bar.close,
            lowest_since_entry=bar.close,
            entry_index=i,
        )
        last_event_index = i
        events.append(
            SignalEvent(
                time=bar.time,
                price=bar.close,
                kind=SignalKind.ENTRY_LONG if side == Side.LONG else SignalKind.ENTRY_SHORT,
                reason_codes=reasons,
                strategy=profile.name,
                strength=strength,
            )
        )
        logger.debug(
            "%s: %s at %.5f SL %.5f TP %.5f (%s, %s)",
            profile.name, side.value, bar.close, levels.sl, levels.tp,
            "+".join(reasons), strength.value,
        )

    return events
