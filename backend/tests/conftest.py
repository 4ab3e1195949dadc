from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tradeguide.bias import BiasStore
from tradeguide.chat import ChatOrchestrator
from tradeguide.config import BiasCfg, Cfg
from tradeguide.main import create_app
from tradeguide.models import MarketSnapshot, Signal

GOOD_REPLY = '{"advice": "Scale in on dips", "risk": "Keep stops tight", "disclaimer": "Not financial advice."}'


class FakeSource:
    def __init__(self, snapshot: MarketSnapshot | None = None, signals=None):
        self.snapshot = snapshot or MarketSnapshot(Signal.BUY, 0.6, 0.8, 150000.0, 125000.0)
        # each entry is a Signal to return or an exception to raise
        self.signals = list(signals or [Signal.BUY])
        self.snapshot_calls = 0
        self.signal_calls = 0

    def fetch_snapshot(self) -> MarketSnapshot:
        self.snapshot_calls += 1
        return self.snapshot

    def current_signal(self) -> Signal:
        self.signal_calls += 1
        item = self.signals.pop(0) if len(self.signals) > 1 else self.signals[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeLLM:
    def __init__(self, text: str = GOOD_REPLY, error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[list[dict]] = []

    def complete(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return self.text


@pytest.fixture
def cfg() -> Cfg:
    return Cfg(admin_password="s3cret", bias=BiasCfg(background=False, retry_delay_sec=0))


@pytest.fixture
def store(cfg) -> BiasStore:
    return BiasStore.from_config(cfg.assets, cfg.bias)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def orchestrator(cfg, store, source, llm) -> ChatOrchestrator:
    return ChatOrchestrator(cfg, store, source, llm)


@pytest.fixture
def client(cfg, store, source, llm) -> TestClient:
    return TestClient(create_app(cfg, store=store, source=source, llm=llm))

