"""Trailing stop — progressive SL management for an open position.

Rules:
  - Track the most favourable price since entry (highest high for longs,
    lowest low for shorts).
  - Once that excursion exceeds ``activation_mult × ATR``, pull the stop
    to ``extreme ∓ trail_mult × ATR`` but never worse than break-even.
  - The stop only ever moves in the position's favour.
"""

from dataclasses import replace
from typing import Optional

from quantai.strategy.models import Bar, PositionState, Side


def trail_position(
    position: PositionState,
    bar: Bar,
    atr: Optional[float],
    activation_mult: float,
    trail_mult: float,
) -> PositionState:
    """Return *position* updated for *bar*.

    Extremes are always refreshed; the stop is only touched once the
    activation distance is reached and *atr* is available.
    """
    highest = max(position.highest_since_entry, bar.high)
    lowest = min(position.lowest_since_entry, bar.low)
    stop = position.stop_loss

    if atr is not None and atr > 0:
        if position.side == Side.LONG:
            if highest - position.entry_price > activation_mult * atr:
                candidate = max(position.entry_price, highest - trail_mult * atr)
                stop = max(stop, candidate)
        else:
            if position.entry_price - lowest > activation_mult * atr:
                candidate = min(position.entry_price, lowest + trail_mult * atr)
                stop = min(stop, candidate)

    return replace(
        position,
        highest_since_entry=highest,
        lowest_since_entry=lowest,
        stop_loss=stop,
    )
