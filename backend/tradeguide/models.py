from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Asset(str, Enum):
    BTC = "BTC"
    SPX = "SPX"
    XAU = "XAU"
    XAG = "XAG"


class Bias(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Signal(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    @classmethod
    def parse(cls, value: Any) -> "Signal":
        if isinstance(value, Signal):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            return cls.HOLD

    def to_bias(self) -> Bias:
        if self is Signal.BUY:
            return Bias.BULLISH
        if self is Signal.SELL:
            return Bias.BEARISH
        return Bias.NEUTRAL


@dataclass(frozen=True)
class MarketSnapshot:
    """Per-request view of the external market source. Defaults are the safe fallbacks."""
    last_signal: Signal = Signal.HOLD
    ratio: Optional[float] = None
    slow_ma: Optional[float] = None
    price: Optional[float] = None
    short_term_realized_price: Optional[float] = None

    def as_dict(self) -> dict:
        return {
            "lastSignal": self.last_signal.value,
            "ratio": self.ratio,
            "slowMA": self.slow_ma,
            "price": self.price,
            "shortTermRealizedPrice": self.short_term_realized_price,
        }


@dataclass(frozen=True)
class ScoreResult:
    confidence_score: int
    top_probability: int

