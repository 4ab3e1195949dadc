from __future__ import annotations
from typing import Optional

import httpx

API_BASE = "https://api.telegram.org"

class TelegramClient:
    """Minimal Bot API client: long-poll getUpdates and sendMessage."""

    def __init__(self, token: str, timeout: float = 60.0, client: Optional[httpx.Client] = None, base_url: str = API_BASE):
        if not token: raise ValueError("TELEGRAM_BOT_TOKEN is not set")
        self.url = f"{base_url}/bot{token}"
        self.client = client or httpx.Client(timeout=timeout)

    def _call(self, method: str, payload: dict, timeout: Optional[float] = None):
        kwargs = {"json": payload}
        if timeout is not None: kwargs["timeout"] = timeout
        r = self.client.post(f"{self.url}/{method}", **kwargs); r.raise_for_status()
        try: data = r.json()
        except ValueError as e: raise httpx.DecodingError(f"{method} returned non-JSON body: {e}") from e
        if not isinstance(data, dict): raise httpx.DecodingError(f"{method} returned {type(data).__name__}, expected an object")
        if not data.get("ok"): raise httpx.HTTPError(f"{method} failed: {data.get('description')}")
        return data.get("result")

    def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> list[dict]:
        payload = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None: payload["offset"] = offset
        # the HTTP read has to outlive the server-side long poll
        return self._call("getUpdates", payload, timeout=timeout + 10) or []

    def send_message(self, chat_id: int, text: str, parse_mode: Optional[str] = None) -> dict:
        payload = {"chat_id": chat_id, "text": text}
        if parse_mode: payload["parse_mode"] = parse_mode
        return self._call("sendMessage", payload)
