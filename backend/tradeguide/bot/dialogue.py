from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional


class Stage(str, Enum):
    AWAITING_ASSET = "awaiting_asset"
    AWAITING_QUESTION = "awaiting_question"


@dataclass
class Conversation:
    stage: Stage = Stage.AWAITING_ASSET
    asset: Optional[str] = None


class DialogueStore:
    """
    Per-chat two-step dialogue: AWAITING_ASSET -> AWAITING_QUESTION -> back to AWAITING_ASSET.

    Transitions go through start / choose_asset / reset only.
    """

    def __init__(self, assets: Iterable[str]):
        self.assets = [a.upper() for a in assets]
        self._lock = threading.Lock()
        self._chats: Dict[int, Conversation] = {}

    def get(self, chat_id: int) -> Optional[Conversation]:
        with self._lock:
            conv = self._chats.get(chat_id)
            return Conversation(conv.stage, conv.asset) if conv else None

    def start(self, chat_id: int) -> Conversation:
        with self._lock:
            conv = self._chats[chat_id] = Conversation()
            return Conversation(conv.stage, conv.asset)

    def choose_asset(self, chat_id: int, text: str) -> Optional[Conversation]:
        """Move to AWAITING_QUESTION when text names an asset; None leaves the state untouched."""
        sym = (text or "").strip().upper()
        if sym not in self.assets:
            return None
        with self._lock:
            conv = self._chats.setdefault(chat_id, Conversation())
            if conv.stage is not Stage.AWAITING_ASSET:
                return None
            conv.stage, conv.asset = Stage.AWAITING_QUESTION, sym
            return Conversation(conv.stage, conv.asset)

    def reset(self, chat_id: int) -> Conversation:
        return self.start(chat_id)
