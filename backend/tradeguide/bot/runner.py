from __future__ import annotations

import logging
import threading
from typing import Optional

import httpx

from ..bias import BiasRefresher
from .telegram import TelegramClient

log = logging.getLogger("tradeguide")


class BotRunner:
    """
    Long-polls Telegram and routes /start and free text to a handler.

    A standalone direct-mode bot has no API lifespan to drive the bias refresher,
    so run() owns it when one is given.
    """

    def __init__(self, client: TelegramClient, handler, poll_timeout: int = 30, error_sleep_sec: float = 5.0,
                 refresher: Optional[BiasRefresher] = None):
        self.client = client
        self.handler = handler
        self.poll_timeout = poll_timeout
        self.error_sleep_sec = error_sleep_sec
        self.refresher = refresher
        self.offset: Optional[int] = None

    def dispatch(self, update: dict) -> None:
        msg = update.get("message") or {}
        text = (msg.get("text") or "").strip()
        chat_id = (msg.get("chat") or {}).get("id")
        if chat_id is None or not text:
            return
        if text.startswith("/start"):
            replies = self.handler.on_start(chat_id)
        else:
            replies = self.handler.on_text(chat_id, text)
        for r in replies:
            self.client.send_message(chat_id, r.text, parse_mode=r.parse_mode)

    def poll_once(self) -> int:
        updates = self.client.get_updates(offset=self.offset, timeout=self.poll_timeout)
        if not isinstance(updates, list):
            raise httpx.DecodingError(f"getUpdates returned {type(updates).__name__}, expected a list")
        for upd in updates:
            if not isinstance(upd, dict):
                log.warning("bot: skipping malformed update %r", upd)
                continue
            # acknowledge before handling
            uid = upd.get("update_id")
            if isinstance(uid, int):
                self.offset = uid + 1
            try:
                self.dispatch(upd)
            except Exception as e:
                log.exception("bot: failed handling update %s: %s", uid, e)
        return len(updates)

    def run(self, stop: Optional[threading.Event] = None) -> None:
        stop = stop or threading.Event()
        if self.refresher is not None:
            self.refresher.start()
        log.info("bot: polling started (%s)", type(self.handler).__name__)
        try:
            while not stop.is_set():
                try:
                    self.poll_once()
                except httpx.HTTPError as e:
                    log.warning("bot: polling error: %s", e)
                    stop.wait(self.error_sleep_sec)
                except Exception as e:
                    log.exception("bot: unexpected polling error: %s", e)
                    stop.wait(self.error_sleep_sec)
        finally:
            if self.refresher is not None:
                self.refresher.stop()
            log.info("bot: polling stopped")
