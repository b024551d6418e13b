"""Strategy data models — typed representations of bars, signals and snapshots."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class SignalKind(str, Enum):
    ENTRY_LONG = "ENTRY_LONG"
    ENTRY_SHORT = "ENTRY_SHORT"
    EXIT_TAKE_PROFIT = "EXIT_TAKE_PROFIT"
    EXIT_STOP_LOSS = "EXIT_STOP_LOSS"

    @property
    def is_entry(self) -> bool:
        return self in (SignalKind.ENTRY_LONG, SignalKind.ENTRY_SHORT)


class Strength(str, Enum):
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"


class Trend(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class Action(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    WAIT = "WAIT"


class Volatility(str, Enum):
    ELEVATED = "ELEVATED"
    NORMAL = "NORMAL"
    COMPRESSED = "COMPRESSED"


@dataclass(frozen=True)
class Bar:
    """A single OHLCV bar.  ``time`` is an integer timestamp (ms)."""

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class AnnotatedBar(Bar):
    """A bar with every derived indicator attached.

    ``None`` means the indicator has not accumulated enough history yet.
    """

    ma_fast: Optional[float] = None
    ma_medium: Optional[float] = None
    ma_slow: Optional[float] = None
    rsi: Optional[float] = None
    bb_upper: Optional[float] = None
    bb_middle: Optional[float] = None
    bb_lower: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_hist: Optional[float] = None
    k: Optional[float] = None
    d: Optional[float] = None
    j: Optional[float] = None
    atr: Optional[float] = None
    adx: Optional[float] = None
    plus_di: Optional[float] = None
    minus_di: Optional[float] = None
    williams_r: Optional[float] = None
    stoch_k: Optional[float] = None
    stoch_d: Optional[float] = None
    lin_reg_slope: Optional[float] = None


@dataclass(frozen=True)
class PositionState:
    """The open position tracked during one signal scan.

    Never outlives the scan that created it.
    """

    side: Side
    entry_price: float
    stop_loss: float
    take_profit: float
    highest_since_entry: float
    lowest_since_entry: float
    entry_index: int

    @property
    def stop_in_profit(self) -> bool:
        """True once the stop has ratcheted to (or past) break-even."""
        if self.side == Side.LONG:
            return self.stop_loss >= self.entry_price
        return self.stop_loss <= self.entry_price


@dataclass(frozen=True)
class SignalEvent:
    """An entry or exit emitted by the signal engine."""

    time: int
    price: float
    kind: SignalKind
    reason_codes: tuple[str, ...]
    strategy: str
    strength: Strength
    closing_side: Optional[Side] = None

    @property
    def reason(self) -> str:
        return "+".join(self.reason_codes)


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Present-moment summary of one analysis run."""

    symbol: str
    interval: str
    strategy: str
    timestamp: int
    trend: Trend
    volatility: Volatility
    support_level: float
    resistance_level: float
    momentum_score: float
    action: Action
    confidence: float
    predicted_price: float
    reasoning: str
    kline_pattern: str
    volume_analysis: str
    trend_strength: str
    signals: tuple[SignalEvent, ...] = ()

    def to_dict(self) -> dict:
        """Plain JSON-ready dict (enums as their string values)."""
        return asdict(self, dict_factory=_enum_dict)


def _enum_dict(items: list[tuple]) -> dict:
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in items
    }


# ── Errors ───────────────────────────────────────────────────────────────


class InvalidProfile(ValueError):
    """A strategy profile carries a non-positive or inconsistent parameter."""


class InsufficientHistory(ValueError):
    """Fewer bars than the analysis floor were supplied."""

    def __init__(self, got: int, required: int) -> None:
        super().__init__(f"Need at least {required} bars for analysis, got {got}")
        self.got = got
        self.required = required
