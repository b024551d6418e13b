"""CLI dashboard — prints an analysis snapshot to the console."""

from quantai.strategy.models import AnalysisSnapshot

# Most recent events shown under the summary.
RECENT_SIGNALS_SHOWN = 5


def print_snapshot(snapshot: AnalysisSnapshot) -> str:
    """Format and print an analysis snapshot.

    Args:
        snapshot: The snapshot produced by ``analyze``.

    Returns:
        The formatted string (also printed to stdout).
    """
    lines = [
        f"──────────── QuantAI {snapshot.symbol} {snapshot.interval} ({snapshot.strategy}) ────────────",
        f"  Action:          {snapshot.action.value} ({snapshot.confidence:.0f}%)",
        f"  Trend:           {snapshot.trend.value} / {snapshot.trend_strength}",
        f"  Volatility:      {snapshot.volatility.value}",
        f"  Support:         {snapshot.support_level:,.4f}",
        f"  Resistance:      {snapshot.resistance_level:,.4f}",
        f"  Momentum (RSI):  {snapshot.momentum_score:.1f}",
        f"  Projection:      {snapshot.predicted_price:,.4f}",
        f"  Pattern:         {snapshot.kline_pattern}",
        f"  Volume:          {snapshot.volume_analysis}",
        f"  Reasoning:       {snapshot.reasoning}",
    ]

    recent = snapshot.signals[-RECENT_SIGNALS_SHOWN:]
    if recent:
        lines.append(f"  Signals ({len(snapshot.signals)} total, latest {len(recent)}):")
        for event in recent:
            lines.append(
                f"    {event.time}  {event.kind.value:<16} {event.price:,.4f}  "
                f"{event.strength.value:<8} {event.reason}"
            )
    else:
        lines.append("  Signals:         none")

    lines.append("─" * 60)
    output = "\n".join(lines)
    print(output)
    return output
