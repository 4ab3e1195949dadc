from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

import httpx

from ..chat import ChatOrchestrator
from ..errors import LLMInvocationError, ValidationError
from ..schemas import ChatOut
from .dialogue import DialogueStore, Stage

log = logging.getLogger("tradeguide")


@dataclass
class Reply:
    text: str
    parse_mode: Optional[str] = None


def find_asset(text: str, assets: Iterable[str]) -> Optional[str]:
    up = (text or "").upper()
    return next((a for a in assets if a.upper() in up), None)


def find_question(text: str, questions: Iterable[str]) -> Optional[str]:
    low = (text or "").lower()
    return next((q for q in questions if q.lower() in low), None)


_MD_SPECIAL = re.compile(r"([_*`\[])")

def _md(text: Optional[str]) -> str:
    """Escape legacy-Markdown control characters in model output."""
    return _MD_SPECIAL.sub(r"\\\1", text or "")


def format_direct_reply(asset: str, question: str, result: ChatOut) -> str:
    r = result.reply
    lines = [
        f"📊 *{asset} — {question}*",
        "",
        f"💡 *Advice:* {_md(r.advice) or 'No advice'}",
        f"🔥 *Confidence Score:* {result.confidenceScore}%",
        f"📈 *Top Probability:* {result.topProbability}%",
        f"⚠️ *Risk Notes:* {_md(r.risk) or 'No risk notes'}",
    ]
    if r.disclaimer:
        lines += ["", f"_{_md(r.disclaimer)}_"]
    return "\n".join(lines)


def format_proxy_reply(data: dict) -> str:
    reply = data.get("reply") or {}
    return (
        f"Asset: {data.get('asset')}\n"
        f"Bias: {data.get('bias')}\n"
        f"Advice: {reply.get('advice') or 'No advice'}\n"
        f"Risk: {reply.get('risk') or 'No risk notes'}\n"
        f"Disclaimer: {reply.get('disclaimer') or ''}"
    )


# ---------------------------------------------------------------------------
# In-process variant: one free-text message carries asset and topic
# ---------------------------------------------------------------------------
class DirectHandler:
    def __init__(self, orchestrator: ChatOrchestrator):
        self.orch = orchestrator
        self.assets = orchestrator.assets
        self.questions = orchestrator.questions

    def on_start(self, chat_id: int) -> List[Reply]:
        topics = "\n".join(f"- {q.capitalize()}" for q in self.questions)
        return [Reply(f"👋 Welcome to *TradeGuide Bot*!\nAsk about {', '.join(self.assets)} for:\n{topics}", "Markdown")]

    def on_text(self, chat_id: int, text: str) -> List[Reply]:
        asset = find_asset(text, self.assets)
        if not asset:
            return [Reply(f"❌ Only {', '.join(self.assets)} supported.")]
        question = find_question(text, self.questions)
        if not question:
            return [Reply(f"❌ Allowed questions: {', '.join(self.questions)}")]

        try:
            result = self.orch.handle(asset, question)
        except ValidationError as e:
            return [Reply(f"⚠️ Error: {e.message}")]
        except LLMInvocationError as e:
            log.error("LLM error for chat %s: %s", chat_id, e)
            return [Reply("⚠️ Error: LLM error")]
        return [Reply(format_direct_reply(asset, question, result), "Markdown")]


# ---------------------------------------------------------------------------
# Standalone variant: asset first, then question, answered by the HTTP backend
# ---------------------------------------------------------------------------
class ProxyHandler:
    def __init__(self, backend_url: str, assets: Iterable[str], client: Optional[httpx.Client] = None,
                 timeout: float = 60.0):
        self.backend_url = backend_url.rstrip("/")
        self.assets = [a.upper() for a in assets]
        self.dialogue = DialogueStore(self.assets)
        self.client = client or httpx.Client(timeout=timeout)

    def _pick(self) -> str:
        return ", ".join(self.assets)

    def on_start(self, chat_id: int) -> List[Reply]:
        self.dialogue.start(chat_id)
        return [Reply(f"Welcome to TradeGuide! Please choose an asset: {self._pick()}")]

    def on_text(self, chat_id: int, text: str) -> List[Reply]:
        conv = self.dialogue.get(chat_id)
        if conv is None:
            self.dialogue.start(chat_id)
            return [Reply(f"Please choose an asset: {self._pick()}")]

        if conv.stage is Stage.AWAITING_ASSET:
            chosen = self.dialogue.choose_asset(chat_id, text)
            if chosen is None:
                return [Reply(f"Invalid asset. Please choose: {self._pick()}")]
            return [Reply(f"Got it! Now type your question about {chosen.asset}.")]

        replies = [self._ask(conv.asset, text.strip())]
        self.dialogue.reset(chat_id)
        replies.append(Reply(f"Ask about another asset: {self._pick()}"))
        return replies

    def _ask(self, asset: str, question: str) -> Reply:
        try:
            r = self.client.post(f"{self.backend_url}/chat", json={"asset": asset, "question": question})
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            log.error("backend call failed: %s", e)
            return Reply("Error contacting the server. Please try again later.")
        if data.get("error"):
            return Reply(f"Error: {data['error']}")
        return Reply(format_proxy_reply(data))
