"""Technical indicators — SMA, EMA, RSI, MACD, Bollinger, KDJ, ATR, Williams %R,
Stochastic, ADX and linear-regression slope.  Pure functions, no I/O.

Every function returns a list the same length as its input.  Entries that
do not yet have enough history are ``None``.
"""

import math
from typing import Optional, Sequence

from quantai.strategy.models import Bar

Series = list[Optional[float]]

# Zero-range windows in the range oscillators resolve to these constants.
DEGENERATE_RSV = 50.0
DEGENERATE_WILLIAMS_R = -50.0
# RSI when both the average gain and the average loss are zero.
FLAT_RSI = 50.0
KDJ_SEED = 50.0

LIN_REG_PERIOD = 14


def _check_period(name: str, period: int) -> None:
    if period < 1:
        raise ValueError(f"{name} period must be >= 1, got {period}")


def _true_ranges(bars: Sequence[Bar]) -> list[float]:
    """TR per bar.  The first bar has no previous close, so TR = high - low."""
    trs: list[float] = []
    for i, bar in enumerate(bars):
        if i == 0:
            trs.append(bar.high - bar.low)
            continue
        prev_close = bars[i - 1].close
        trs.append(
            max(
                bar.high - bar.low,
                abs(bar.high - prev_close),
                abs(bar.low - prev_close),
            )
        )
    return trs


def _raw_stochastic(bars: Sequence[Bar], period: int) -> Series:
    """RSV: where the close sits in the trailing high/low window, 0–100."""
    rsv: Series = [None] * len(bars)
    for i in range(period - 1, len(bars)):
        window = bars[i - period + 1 : i + 1]
        lowest = min(b.low for b in window)
        highest = max(b.high for b in window)
        if highest == lowest:
            rsv[i] = DEGENERATE_RSV
        else:
            rsv[i] = (bars[i].close - lowest) / (highest - lowest) * 100.0
    return rsv


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(values: Sequence[Optional[float]], period: int) -> Series:
    """Simple moving average of the trailing *period* values.

    A window containing an absent value yields ``None``.
    """
    _check_period("SMA", period)
    result: Series = [None] * len(values)
    for i in range(period - 1, len(values)):
        window = values[i - period + 1 : i + 1]
        if any(v is None for v in window):
            continue
        result[i] = sum(window) / period
    return result


def calculate_ema(values: Sequence[Optional[float]], period: int) -> Series:
    """Exponential moving average.

    ``EMA_today = value × k + EMA_yesterday × (1 - k)`` with
    ``k = 2 / (period + 1)``.  Seeded with the first present value, so
    the output is present from that index on.
    """
    _check_period("EMA", period)
    k = 2.0 / (period + 1)
    result: Series = [None] * len(values)
    ema: Optional[float] = None
    for i, value in enumerate(values):
        if value is None:
            continue
        ema = value if ema is None else value * k + ema * (1 - k)
        result[i] = ema
    return result


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(closes: Sequence[float], period: int = 14) -> Series:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RSI = 100 - 100 / (1 + avg_gain / avg_loss)

    A zero average loss pins RSI at 100, or at ``FLAT_RSI`` when the
    average gain is zero as well.  The first value is at index *period*.
    """
    _check_period("RSI", period)
    rsi: Series = [None] * len(closes)
    if len(closes) < period + 1:
        return rsi

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    def _rsi_from_avgs(ag: float, al: float) -> float:
        if al == 0:
            return FLAT_RSI if ag == 0 else 100.0
        return 100.0 - 100.0 / (1.0 + ag / al)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    rsi[period] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        # deltas are offset by one from closes
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[Series, Series, Series]:
    """Return ``(macd_line, signal_line, histogram)``.

    MACD line = EMA(fast) − EMA(slow); signal = EMA(signal) of the line.
    """
    ema_fast = calculate_ema(closes, fast)
    ema_slow = calculate_ema(closes, slow)
    line: Series = [
        f - s if f is not None and s is not None else None
        for f, s in zip(ema_fast, ema_slow)
    ]
    signal_line = calculate_ema(line, signal)
    hist: Series = [
        m - s if m is not None and s is not None else None
        for m, s in zip(line, signal_line)
    ]
    return line, signal_line, hist


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    closes: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> tuple[Series, Series, Series]:
    """Calculate Bollinger Bands.

    Middle = SMA(close, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    σ is the population standard deviation of the window.
    Returns ``(upper, middle, lower)``.
    """
    _check_period("Bollinger", period)
    n = len(closes)
    upper: Series = [None] * n
    middle: Series = [None] * n
    lower: Series = [None] * n

    for i in range(period - 1, n):
        window = closes[i - period + 1 : i + 1]
        sma = sum(window) / period
        variance = sum((x - sma) ** 2 for x in window) / period
        sigma = math.sqrt(variance)

        middle[i] = sma
        upper[i] = sma + std_dev * sigma
        lower[i] = sma - std_dev * sigma

    return upper, middle, lower


# ── Oscillators ──────────────────────────────────────────────────────────


def calculate_kdj(bars: Sequence[Bar], period: int = 9) -> tuple[Series, Series, Series]:
    """KDJ oscillator.

    K and D start at 50 and are smoothed ``2/3 × prev + 1/3 × new`` from
    the first complete RSV window; J = 3K − 2D.
    """
    _check_period("KDJ", period)
    rsv = _raw_stochastic(bars, period)
    n = len(bars)
    k_series: Series = [None] * n
    d_series: Series = [None] * n
    j_series: Series = [None] * n

    k = KDJ_SEED
    d = KDJ_SEED
    for i in range(period - 1, n):
        k = (2.0 / 3.0) * k + (1.0 / 3.0) * rsv[i]
        d = (2.0 / 3.0) * d + (1.0 / 3.0) * k
        k_series[i] = k
        d_series[i] = d
        j_series[i] = 3.0 * k - 2.0 * d

    return k_series, d_series, j_series


def calculate_williams_r(bars: Sequence[Bar], period: int = 14) -> Series:
    """Williams %R in [-100, 0]; a zero-range window gives -50."""
    _check_period("Williams %R", period)
    result: Series = [None] * len(bars)
    for i in range(period - 1, len(bars)):
        window = bars[i - period + 1 : i + 1]
        highest = max(b.high for b in window)
        lowest = min(b.low for b in window)
        if highest == lowest:
            result[i] = DEGENERATE_WILLIAMS_R
        else:
            result[i] = (highest - bars[i].close) / (highest - lowest) * -100.0
    return result


def calculate_stochastic(
    bars: Sequence[Bar],
    period: int = 14,
    smooth: int = 3,
) -> tuple[Series, Series]:
    """Slow stochastic: raw %K smoothed once for %K and again for %D."""
    _check_period("Stochastic smoothing", smooth)
    _check_period("Stochastic", period)
    raw = _raw_stochastic(bars, period)
    stoch_k = calculate_sma(raw, smooth)
    stoch_d = calculate_sma(stoch_k, smooth)
    return stoch_k, stoch_d


# ── ATR ──────────────────────────────────────────────────────────────────


def calculate_atr(bars: Sequence[Bar], period: int = 14) -> Series:
    """Average True Range as the SMA of true range over *period* bars.

    TR = max(high - low, |high - prev_close|, |low - prev_close|)
    """
    _check_period("ATR", period)
    return calculate_sma(_true_ranges(bars), period)


# ── ADX ──────────────────────────────────────────────────────────────────


def calculate_adx(
    bars: Sequence[Bar],
    period: int = 14,
) -> tuple[Series, Series, Series]:
    """Calculate the Average Directional Index with +DI / −DI.

    Algorithm:
        1. +DM / -DM directional movement per bar (only the larger move
           counts, and only when positive).
        2. Wilder-smooth +DM, -DM, and TR over *period*.
        3. +DI = 100 × smoothed_+DM / smoothed_TR
        4. -DI = 100 × smoothed_-DM / smoothed_TR
        5. DX = 100 × |+DI − −DI| / (+DI + −DI)
        6. ADX = Wilder-smoothed DX over *period*.

    DI values start at index *period*; ADX at index ``2 × period - 1``.
    A zero smoothed TR gives DI = 0 and DX = 0.

    Returns ``(adx, plus_di, minus_di)``.
    """
    _check_period("ADX", period)
    n = len(bars)
    adx: Series = [None] * n
    plus_di: Series = [None] * n
    minus_di: Series = [None] * n
    if n < period + 1:
        return adx, plus_di, minus_di

    # Step 1: raw +DM, -DM, TR per bar (index 0 is unused)
    plus_dm_raw: list[float] = [0.0]
    minus_dm_raw: list[float] = [0.0]
    tr_raw: list[float] = [0.0]

    for i in range(1, n):
        high = bars[i].high
        low = bars[i].low
        prev_close = bars[i - 1].close

        up_move = high - bars[i - 1].high
        down_move = bars[i - 1].low - low

        plus_dm_raw.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dm_raw.append(down_move if (down_move > up_move and down_move > 0) else 0.0)
        tr_raw.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))

    # Step 2: Wilder-smooth, seeded with the sum of the first *period* bars
    smoothed_plus_dm = sum(plus_dm_raw[1 : period + 1])
    smoothed_minus_dm = sum(minus_dm_raw[1 : period + 1])
    smoothed_tr = sum(tr_raw[1 : period + 1])

    def _directional(s_pdm: float, s_mdm: float, s_tr: float) -> tuple[float, float, float]:
        if s_tr == 0:
            return 0.0, 0.0, 0.0
        p = 100.0 * s_pdm / s_tr
        m = 100.0 * s_mdm / s_tr
        di_sum = p + m
        dx = 0.0 if di_sum == 0 else 100.0 * abs(p - m) / di_sum
        return p, m, dx

    # Step 3-5: DI and DX, dx_values[0] belongs to bar index *period*
    dx_values: list[float] = []
    for i in range(period, n):
        if i > period:
            smoothed_plus_dm = smoothed_plus_dm - smoothed_plus_dm / period + plus_dm_raw[i]
            smoothed_minus_dm = smoothed_minus_dm - smoothed_minus_dm / period + minus_dm_raw[i]
            smoothed_tr = smoothed_tr - smoothed_tr / period + tr_raw[i]
        p, m, dx = _directional(smoothed_plus_dm, smoothed_minus_dm, smoothed_tr)
        plus_di[i] = p
        minus_di[i] = m
        dx_values.append(dx)

    # Step 6: ADX seed = mean of the first *period* DX values
    if len(dx_values) < period:
        return adx, plus_di, minus_di

    adx_prev = sum(dx_values[:period]) / period
    adx[2 * period - 1] = adx_prev
    for j in range(period, len(dx_values)):
        adx_prev = (adx_prev * (period - 1) + dx_values[j]) / period
        adx[period + j] = adx_prev

    return adx, plus_di, minus_di


# ── Linear regression ────────────────────────────────────────────────────


def calculate_lin_reg_slope(
    closes: Sequence[float],
    period: int = LIN_REG_PERIOD,
) -> Series:
    """Least-squares slope of close against bar offset over *period* bars.

    Units are price per bar.
    """
    if period < 2:
        raise ValueError(f"Linear regression period must be >= 2, got {period}")

    n = period
    sum_x = sum(range(n))
    sum_x_sq = sum(x * x for x in range(n))
    denominator = n * sum_x_sq - sum_x * sum_x

    result: Series = [None] * len(closes)
    for i in range(period - 1, len(closes)):
        window = closes[i - period + 1 : i + 1]
        sum_y = sum(window)
        sum_xy = sum(x * y for x, y in enumerate(window))
        result[i] = (n * sum_xy - sum_x * sum_y) / denominator
    return result
