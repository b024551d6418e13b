"""Stream configuration dataclass.

Represents one analysis stream (symbol + interval + strategy profile).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StreamConfig:
    """Configuration for a single analysis stream.

    Each stream runs its own ``AnalysisEngine`` that refetches and fully
    re-analyses *bar_limit* bars every *refresh_interval_seconds*.
    """

    symbol: str
    interval: str
    strategy: str  # profile registry key, e.g. "SWING"
    bar_limit: int = 500
    refresh_interval_seconds: float = 5.0

    @property
    def name(self) -> str:
        return f"{self.symbol}:{self.interval}:{self.strategy}"
