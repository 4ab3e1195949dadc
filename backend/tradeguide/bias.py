from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, TypeVar

from .config import BiasCfg
from .errors import UpstreamFetchError, ValidationError
from .models import Bias
from .providers.market_source import MarketSource

log = logging.getLogger("tradeguide")

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
class BiasStore:
    """
    In-memory asset -> bias map shared by the API, the bot and the refresher.

    Every asset starts neutral. The polled asset is written by refresh() and copied
    onto its mirrors in the same critical section; admin assets are written by set().
    Nothing is persisted.
    """

    def __init__(self, assets: Iterable[str], admin_assets: Iterable[str] = ("XAU", "XAG"),
                 polled_asset: str = "BTC", mirrors: Optional[Dict[str, str]] = None):
        self._lock = threading.Lock()
        self._data: Dict[str, Bias] = {a.upper(): Bias.NEUTRAL for a in assets}
        self.admin_assets = [a.upper() for a in admin_assets]
        self.polled_asset = polled_asset.upper()
        self.mirrors = {k.upper(): v.upper() for k, v in (mirrors if mirrors is not None else {"SPX": "BTC"}).items()}

    @classmethod
    def from_config(cls, assets: Iterable[str], cfg: BiasCfg) -> "BiasStore":
        return cls(assets, cfg.admin_assets, cfg.polled_asset, cfg.mirrors)

    def get(self, asset: str) -> Bias:
        with self._lock:
            return self._data.get(str(asset).upper(), Bias.NEUTRAL)

    def set(self, asset, value) -> Bias:
        """Admin write; asset and bias must match exactly (XAU/XAG, lowercase bias)."""
        if not isinstance(asset, str) or asset not in self.admin_assets:
            raise ValidationError(f"Only {'/'.join(self.admin_assets)}", self.admin_assets)
        if not isinstance(value, str) or value not in [b.value for b in Bias]:
            raise ValidationError("Invalid bias", [b.value for b in Bias])
        bias = Bias(value)
        with self._lock:
            self._data[asset] = bias
        log.info("Bias set by admin: %s=%s", asset, bias.value)
        return bias

    def refresh(self, source: MarketSource) -> Bias:
        """Pull the current signal from source; UpstreamFetchError propagates to the caller."""
        bias = source.current_signal().to_bias()
        with self._lock:
            self._data[self.polled_asset] = bias
            for mirror, origin in self.mirrors.items():
                if origin == self.polled_asset:
                    self._data[mirror] = bias
        log.info("Bias updated: %s", self.snapshot())
        return bias

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return {k: v.value for k, v in self._data.items()}


# ---------------------------------------------------------------------------
# Retry + background refresh
# ---------------------------------------------------------------------------
@dataclass
class RetryPolicy:
    max_attempts: int = 4
    delay_sec: float = 5.0

    def run(self, fn: Callable[[], T], stop: Optional[threading.Event] = None,
            retry_on: tuple = (UpstreamFetchError,)) -> T:
        attempts = max(1, self.max_attempts)
        attempt = 1
        while True:
            try:
                return fn()
            except retry_on as e:
                if attempt >= attempts:
                    raise
                log.warning("attempt %d/%d failed: %s; retrying in %.1fs", attempt, attempts, e, self.delay_sec)
                if stop is not None:
                    if stop.wait(self.delay_sec):
                        raise
                elif self.delay_sec > 0:
                    time.sleep(self.delay_sec)
            attempt += 1


class BiasRefresher:
    """Daemon thread refreshing the store now and then every interval_sec."""

    def __init__(self, store: BiasStore, source: MarketSource, interval_sec: float = 3600.0,
                 policy: Optional[RetryPolicy] = None):
        self.store = store
        self.source = source
        self.interval_sec = interval_sec
        self.policy = policy or RetryPolicy()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, store: BiasStore, source: MarketSource, cfg: BiasCfg) -> "BiasRefresher":
        return cls(store, source, interval_sec=cfg.refresh_interval_min * 60,
                   policy=RetryPolicy(max_attempts=cfg.retries + 1, delay_sec=cfg.retry_delay_sec))

    def tick(self) -> Optional[Bias]:
        try:
            return self.policy.run(lambda: self.store.refresh(self.source), stop=self._stop)
        except UpstreamFetchError as e:
            log.error("Error fetching bias, giving up until next refresh: %s", e)
            return None

    def _loop(self):
        while True:
            try:
                self.tick()
            except Exception as e:
                log.exception("bias refresh error: %s", e)
            if self._stop.wait(self.interval_sec):
                break

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="bias-refresh", daemon=True)
        self._thread.start()
        log.info("Bias refresher started (every %.0fs)", self.interval_sec)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
