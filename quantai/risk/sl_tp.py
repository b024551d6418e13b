"""Stop-loss and take-profit calculation — pure math, no I/O.

Both levels are ATR offsets from the entry:
    SL = entry ∓ stop_mult × ATR
    TP = entry ± profit_mult × ATR
(upper sign for longs).
"""

from dataclasses import dataclass

from quantai.strategy.models import Side


@dataclass(frozen=True)
class RiskLevels:
    """Computed stop-loss and take-profit for a position."""

    sl: float
    tp: float


def calculate_atr_risk(
    entry_price: float,
    side: Side,
    atr: float,
    stop_mult: float,
    profit_mult: float,
) -> RiskLevels:
    """Calculate SL/TP as ATR multiples from *entry_price*.

    Args:
        entry_price: Entry (the signal bar's close).
        side: ``Side.LONG`` or ``Side.SHORT``.
        atr: ATR at the signal bar.  Must be positive.
        stop_mult: Stop distance in ATRs.
        profit_mult: Target distance in ATRs.

    Raises:
        ValueError: If *atr* is not positive.
    """
    if atr <= 0:
        raise ValueError(f"atr must be positive, got {atr}")

    stop_dist = stop_mult * atr
    profit_dist = profit_mult * atr
    if side == Side.LONG:
        return RiskLevels(sl=entry_price - stop_dist, tp=entry_price + profit_dist)
    return RiskLevels(sl=entry_price + stop_dist, tp=entry_price - profit_dist)
