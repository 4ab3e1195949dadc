from __future__ import annotations

import json
import logging
import re
from typing import Dict, List, Tuple

from .bias import BiasStore
from .config import Cfg
from .errors import ValidationError
from .models import Bias, MarketSnapshot, ScoreResult
from .providers.market_source import MarketSource
from .schemas import ChatOut, ChatReply
from .scoring import score_snapshot

log = logging.getLogger("tradeguide")

SYSTEM_PROMPT = """You are TradeGuide, a trading assistant.
- Assets: {assets} only. Refuse anything about other instruments.
- Only answer these topics: {topics}.
- Use the bias you are given; for BTC/SPX it comes from the live signal, for XAU/XAG it is set by an admin.
  Never contradict or replace it.
- Treat the confidence score and top probability as heuristics, not guarantees.
- Answer in JSON format only: {{"advice": "...", "risk": "...", "disclaimer": "..."}}"""

_JSON_OBJ = re.compile(r"\{.*\}", re.S)


def parse_reply(text: str) -> ChatReply:
    """Parse the model's JSON answer; anything unparseable is returned verbatim as advice."""
    candidates = [text]
    m = _JSON_OBJ.search(text or "")
    if m and m.group(0) != text:
        candidates.append(m.group(0))
    for cand in candidates:
        try:
            data = json.loads(cand)
        except (TypeError, ValueError):
            continue
        if isinstance(data, dict):
            fields = {}
            for k in ("advice", "risk", "disclaimer"):
                v = data.get(k)
                fields[k] = v if v is None or isinstance(v, str) else json.dumps(v)
            return ChatReply(**fields)
    return ChatReply(advice=(text or "").strip(), raw=True)


class ChatOrchestrator:
    def __init__(self, cfg: Cfg, store: BiasStore, source: MarketSource, llm):
        self.cfg = cfg
        self.store = store
        self.source = source
        self.llm = llm
        self.assets = [a.upper() for a in cfg.assets]
        self.questions = [q.lower() for q in cfg.allowed_questions]

    def validate(self, asset: str, question: str) -> Tuple[str, str]:
        sym = str(asset or "").strip().upper()
        if sym not in self.assets:
            raise ValidationError(f"Only {', '.join(self.assets)} allowed.", self.assets)
        q = str(question or "").strip()
        if not any(topic in q.lower() for topic in self.questions):
            raise ValidationError(f"Only answerable questions: {', '.join(self.questions)}", self.questions)
        return sym, q

    def build_messages(self, asset: str, question: str, bias: Bias,
                       snapshot: MarketSnapshot, scores: ScoreResult) -> List[Dict[str, str]]:
        system = SYSTEM_PROMPT.format(assets=", ".join(self.assets), topics=", ".join(self.questions))
        user = (
            f"Question: {question}\n"
            f"Asset: {asset}\n"
            f"Bias: {bias.value}\n"
            f"Last signal: {snapshot.last_signal.value}\n"
            f"Confidence score: {scores.confidence_score}%\n"
            f"Top probability: {scores.top_probability}%"
        )
        return [{"role": "system", "content": system}, {"role": "user", "content": user}]

    def handle(self, asset: str, question: str) -> ChatOut:
        """Validate, gather bias + fresh market data + scores, ask the LLM. LLMInvocationError propagates."""
        sym, q = self.validate(asset, question)
        bias = self.store.get(sym)
        snapshot = self.source.fetch_snapshot()
        scores = score_snapshot(snapshot)

        text = self.llm.complete(self.build_messages(sym, q, bias, snapshot, scores))
        reply = parse_reply(text)
        if reply.raw:
            log.warning("LLM reply for %s was not JSON, returning raw text", sym)

        return ChatOut(
            asset=sym,
            bias=bias.value,
            confidenceScore=scores.confidence_score,
            topProbability=scores.top_probability,
            reply=reply,
            **snapshot.as_dict(),
        )
