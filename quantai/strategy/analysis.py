"""Analysis entry points.

``enrich`` (re-exported from ``quantai.strategy.enrichment``) and
``analyze`` are the two calls collaborators use; ``run_pipeline`` chains
them for a raw bar series.
"""

from typing import Sequence

from quantai.strategy.context import synthesize
from quantai.strategy.enrichment import enrich
from quantai.strategy.models import AnalysisSnapshot, AnnotatedBar, Bar, InsufficientHistory
from quantai.strategy.profiles import StrategyProfile
from quantai.strategy.signals import generate_signals

__all__ = ["analyze", "enrich", "run_pipeline"]


def analyze(
    symbol: str,
    interval: str,
    annotated_bars: Sequence[AnnotatedBar],
    profile: StrategyProfile,
) -> AnalysisSnapshot:
    """Run the signal engine and context synthesis over enriched bars.

    Raises:
        InvalidProfile: *profile* is unusable (checked first).
        InsufficientHistory: too few bars for the scan to evaluate any
            bar past the warm-up (``profile.required_bars``).
    """
    profile.validate()
    if len(annotated_bars) < profile.required_bars:
        raise InsufficientHistory(len(annotated_bars), profile.required_bars)

    signals = generate_signals(annotated_bars, profile)
    return synthesize(
        annotated_bars,
        signals,
        symbol=symbol,
        interval=interval,
        strategy=profile.name,
    )


def run_pipeline(
    symbol: str,
    interval: str,
    bars: Sequence[Bar],
    profile: StrategyProfile,
) -> AnalysisSnapshot:
    """Enrich raw *bars* and analyze them in one call."""
    return analyze(symbol, interval, enrich(bars, profile), profile)
