from __future__ import annotations

from typing import Iterable


class TradeGuideError(Exception):
    """Base tradeguide exception."""


class ValidationError(TradeGuideError):
    """Raised when an asset, question, or bias is outside its allowed set."""

    def __init__(self, message: str, allowed: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.allowed = list(allowed)


class UpstreamFetchError(TradeGuideError):
    """Raised when the signal page or the realized-price chart cannot be read."""


class LLMInvocationError(TradeGuideError):
    """Raised when the completion API call fails."""


class AuthorizationError(TradeGuideError):
    """Raised on an admin password mismatch."""
