from __future__ import annotations

import json
import logging
import re
from typing import Optional, Protocol

import requests
import urllib3
from bs4 import BeautifulSoup

from ..config import SourceCfg
from ..errors import UpstreamFetchError
from ..models import MarketSnapshot, Signal
from ..scoring import as_number
from .realized_price import RealizedPriceProvider

log = logging.getLogger("tradeguide")

UA_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Cache-Control": "no-cache",
}

_NUM = r"([0-9][0-9,]*(?:\.[0-9]+)?)"
PATTERNS = {
    "Last_signal": re.compile(r"Current Signal:\s*(BUY|SELL|HOLD)", re.I),
    "Ratio": re.compile(r"Ratio:\s*" + _NUM),
    "Slow_MA": re.compile(r"Slow_MA:\s*" + _NUM),
    "Close": re.compile(r"Price:\s*\$?\s*" + _NUM),
}


class MarketSource(Protocol):
    def fetch_snapshot(self) -> MarketSnapshot: ...
    def current_signal(self) -> Signal: ...


def parse_signal_page(text: str) -> dict:
    """
    Extract Last_signal / Ratio / Slow_MA / Close from the premium page.

    The endpoint sometimes answers JSON and sometimes the rendered HTML page;
    JSON wins, otherwise the visible text is scanned. Missing fields are left out.
    """
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return {k: data[k] for k in PATTERNS if data.get(k) not in (None, "")}
    except ValueError:
        pass

    body = BeautifulSoup(text or "", "lxml").get_text(" ", strip=True)
    out = {}
    for key, rx in PATTERNS.items():
        m = rx.search(body)
        if m:
            out[key] = m.group(1)
    return out


def snapshot_from_fields(fields: dict, short_term_realized_price: Optional[float] = None) -> MarketSnapshot:
    return MarketSnapshot(
        last_signal=Signal.parse(fields.get("Last_signal")),
        ratio=as_number(fields.get("Ratio")),
        slow_ma=as_number(fields.get("Slow_MA")),
        price=as_number(fields.get("Close")),
        short_term_realized_price=short_term_realized_price,
    )


class SwingTradeSource:
    def __init__(self, cfg: SourceCfg, session: Optional[requests.Session] = None,
                 realized: Optional[RealizedPriceProvider] = None):
        self.cfg = cfg
        self.session = session or requests.Session()
        self.realized = realized or RealizedPriceProvider(cfg)
        if not cfg.verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def _fetch_fields(self) -> dict:
        try:
            r = self.session.get(self.cfg.signal_url, headers=UA_HEADERS,
                                 timeout=self.cfg.timeout_sec, verify=self.cfg.verify_ssl)
            r.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamFetchError(f"signal page request failed: {e}") from e
        return parse_signal_page(r.text)

    def current_signal(self) -> Signal:
        return Signal.parse(self._fetch_fields().get("Last_signal"))

    def fetch_snapshot(self) -> MarketSnapshot:
        try:
            fields = self._fetch_fields()
        except UpstreamFetchError as e:
            log.warning("market data unavailable, using defaults: %s", e)
            fields = {}
        snap = snapshot_from_fields(fields, self.realized.latest_or_default())
        log.info("Market data: %s", snap.as_dict())
        return snap
