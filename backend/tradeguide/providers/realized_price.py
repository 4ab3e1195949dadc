from __future__ import annotations
import logging
from typing import Optional

import httpx

from ..config import SourceCfg
from ..errors import UpstreamFetchError

log = logging.getLogger("tradeguide")

class RealizedPriceProvider:
    """Short-term-holder realized price, read from the chart's Dash update callback."""

    def __init__(self, cfg: SourceCfg, client: Optional[httpx.Client] = None):
        self.cfg = cfg
        self.client = client or httpx.Client(timeout=cfg.timeout_sec)

    def _headers(self) -> dict:
        h = {
            "User-Agent": "Mozilla/5.0",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Origin": self.cfg.realized_price_origin,
            "Referer": self.cfg.realized_price_origin + self.cfg.realized_price_path,
        }
        if self.cfg.realized_price_cookie: h["Cookie"] = self.cfg.realized_price_cookie
        if self.cfg.realized_price_csrf: h["X-CSRFToken"] = self.cfg.realized_price_csrf
        return h

    def _payload(self) -> dict:
        return {
            "output": "chart.figure",
            "outputs": {"id": "chart", "property": "figure"},
            "inputs": [
                {"id": "url", "property": "pathname", "value": self.cfg.realized_price_path},
                {"id": "display", "property": "children", "value": "xs 533px"},
            ],
            "changedPropIds": ["url.pathname", "display.children"],
        }

    def latest(self) -> float:
        try:
            r = self.client.post(self.cfg.realized_price_url, headers=self._headers(), json=self._payload())
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamFetchError(f"realized price request failed: {e}") from e
        try:
            # trace 0 is price, trace 1 the STH realized price
            ys = data["response"]["chart"]["figure"]["data"][1]["y"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamFetchError(f"unexpected realized price payload: {e!r}") from e
        if ys is None:
            ys = []
        if not isinstance(ys, (list, tuple)):
            raise UpstreamFetchError(f"realized price series is not a list: {ys!r}")
        for y in reversed(ys):
            if y is None:
                continue
            try:
                return float(y)
            except (TypeError, ValueError) as e:
                raise UpstreamFetchError(f"non-numeric realized price {y!r}") from e
        raise UpstreamFetchError("realized price series is empty")

    def latest_or_default(self) -> Optional[float]:
        try:
            return self.latest()
        except UpstreamFetchError as e:
            log.warning("realized price unavailable, using fallback %s: %s", self.cfg.realized_price_fallback, e)
            return self.cfg.realized_price_fallback
