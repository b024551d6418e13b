"""Enrichment pipeline — attaches every indicator to a bar series."""

from typing import Sequence

from quantai.strategy.indicators import (
    calculate_adx,
    calculate_atr,
    calculate_bollinger,
    calculate_kdj,
    calculate_lin_reg_slope,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    calculate_williams_r,
)
from quantai.strategy.models import AnnotatedBar, Bar
from quantai.strategy.profiles import StrategyProfile


def enrich(bars: Sequence[Bar], profile: StrategyProfile) -> list[AnnotatedBar]:
    """Compute all indicators for *bars* with *profile*'s periods.

    Nothing is cached between calls; a different profile gives a fully
    recomputed series.  Empty input returns an empty list.

    Raises ``InvalidProfile`` before any computation if *profile* is unusable.
    """
    profile.validate()
    if not bars:
        return []

    closes = [b.close for b in bars]

    ma_fast = calculate_sma(closes, profile.ma_fast)
    ma_medium = calculate_sma(closes, profile.ma_medium)
    ma_slow = calculate_sma(closes, profile.ma_slow)
    rsi = calculate_rsi(closes, profile.rsi_period)
    bb_upper, bb_middle, bb_lower = calculate_bollinger(
        closes, profile.bb_period, profile.bb_multiplier,
    )
    macd, macd_signal, macd_hist = calculate_macd(
        closes, profile.macd_fast, profile.macd_slow, profile.macd_signal,
    )
    k, d, j = calculate_kdj(bars, profile.kdj_period)
    atr = calculate_atr(bars, profile.atr_period)
    adx, plus_di, minus_di = calculate_adx(bars, profile.adx_period)
    williams_r = calculate_williams_r(bars, profile.williams_period)
    stoch_k, stoch_d = calculate_stochastic(
        bars, profile.stoch_period, profile.stoch_smooth,
    )
    slopes = calculate_lin_reg_slope(closes)

    return [
        AnnotatedBar(
            time=b.time,
            open=b.open,
            high=b.high,
            low=b.low,
            close=b.close,
            volume=b.volume,
            ma_fast=ma_fast[i],
            ma_medium=ma_medium[i],
            ma_slow=ma_slow[i],
            rsi=rsi[i],
            bb_upper=bb_upper[i],
            bb_middle=bb_middle[i],
            bb_lower=bb_lower[i],
            macd=macd[i],
            macd_signal=macd_signal[i],
            macd_hist=macd_hist[i],
            k=k[i],
            d=d[i],
            j=j[i],
            atr=atr[i],
            adx=adx[i],
            plus_di=plus_di[i],
            minus_di=minus_di[i],
            williams_r=williams_r[i],
            stoch_k=stoch_k[i],
            stoch_d=stoch_d[i],
            lin_reg_slope=slopes[i],
        )
        for i, b in enumerate(bars)
    ]
