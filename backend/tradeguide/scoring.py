from __future__ import annotations
import math
from typing import Any, Optional

from .models import MarketSnapshot, ScoreResult, Signal

# ---------------------------------------------------------------------------
# Confidence score constants
# ---------------------------------------------------------------------------
CONFIDENCE_FLOOR = 10
CONFIDENCE_CAP = 100
# distance is measured against this fraction of slow_ma
CONFIDENCE_SCALE = 0.5

# ---------------------------------------------------------------------------
# Top probability breakpoints: (price / realized price) -> percent
# ---------------------------------------------------------------------------
TOP_LOW, TOP_MID, TOP_HIGH = 1.0, 1.18, 1.36
PROB_LOW, PROB_MID, PROB_HIGH = 10, 60, 90


def as_number(value: Any) -> Optional[float]:
    """Coerce a scraped value to a finite float, or None when it is absent or junk."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def _round(x: float) -> int:
    # half-up, not banker's rounding
    return int(math.floor(x + 0.5))


def _normalized_distance(distance: float, slow_ma: float) -> float:
    scale = CONFIDENCE_SCALE * slow_ma
    if scale == 0:
        return float(CONFIDENCE_CAP) if distance > 0 else 0.0
    return min(distance / scale * 100, CONFIDENCE_CAP)


def confidence_score(last_signal: Any, ratio: Any, slow_ma: Any) -> int:
    """
    How far ratio sits from its slow moving average on the side the signal implies.

    Returns 0 when either number is missing, otherwise an integer in [10, 100].
    BUY counts distance only while ratio <= slow_ma, SELL only while ratio >= slow_ma;
    HOLD and anything unrecognised stay at the floor. This is a divergence measure,
    not a probability of the signal being right.
    """
    r, ma = as_number(ratio), as_number(slow_ma)
    if r is None or ma is None:
        return 0

    signal = Signal.parse(last_signal)
    score = float(CONFIDENCE_FLOOR)
    if signal is Signal.BUY and not r > ma:
        score = max(_normalized_distance(abs(ma - r), ma), CONFIDENCE_FLOOR)
    elif signal is Signal.SELL and not r < ma:
        score = max(_normalized_distance(abs(r - ma), ma), CONFIDENCE_FLOOR)
    return _round(score)


def top_probability(price: Any, short_term_realized_price: Any) -> int:
    """
    Likelihood (0-90) that price is near a local top, from price / short-term realized price.

    Piecewise linear through (1.0, 10), (1.18, 60), (1.36, 90); below 1.0 the top is
    taken as already passed (0) and from 1.36 up it saturates at 90.
    """
    px, srp = as_number(price), as_number(short_term_realized_price)
    if not px or not srp:
        return 0

    r = px / srp
    if r < TOP_LOW:
        return 0
    if r >= TOP_HIGH:
        return PROB_HIGH
    if r >= TOP_MID:
        return _round(PROB_MID + ((PROB_HIGH - PROB_MID) / (TOP_HIGH - TOP_MID)) * (r - TOP_MID))
    return _round(PROB_LOW + ((r - TOP_LOW) / (TOP_MID - TOP_LOW)) * (PROB_MID - PROB_LOW))


def score_snapshot(snapshot: MarketSnapshot) -> ScoreResult:
    return ScoreResult(
        confidence_score=confidence_score(snapshot.last_signal, snapshot.ratio, snapshot.slow_ma),
        top_probability=top_probability(snapshot.price, snapshot.short_term_realized_price),
    )
