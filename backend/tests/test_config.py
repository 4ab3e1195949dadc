from __future__ import annotations

import pytest

from tradeguide.cli import build_bot
from tradeguide.bot.handlers import DirectHandler, ProxyHandler
from tradeguide.config import ALLOWED_QUESTIONS, BiasCfg, BotCfg, Cfg, load_config


def test_defaults_without_file(tmp_path):
    cfg = load_config(tmp_path / "missing.yaml", environ={})
    assert cfg.assets == ["BTC", "SPX", "XAU", "XAG"]
    assert cfg.allowed_questions == ALLOWED_QUESTIONS
    assert cfg.bias.admin_assets == ["XAU", "XAG"]
    assert cfg.bias.mirrors == {"SPX": "BTC"}
    assert cfg.bias.retries == 3 and cfg.bias.retry_delay_sec == 5.0
    assert cfg.port == 3000
    assert cfg.llm.model == "llama-3.1-8b-instant"
    assert cfg.source.realized_price_fallback == 123000.0


def test_yaml_then_env_overrides(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "port: 8080\n"
        "llm:\n  model: llama-3.3-70b-versatile\n  temperature: 0.1\n"
        "bias:\n  refresh_interval_min: 15\n"
    )
    env = {"GROQ_API_KEY": "gsk_test", "ADMIN_PASSWORD": "pw", "PORT": "9000", "BIAS_BG": "0",
           "BMP_COOKIE": "c=1", "BOT_MODE": "proxy", "LLM_MODEL": ""}
    cfg = load_config(p, environ=env)
    assert cfg.port == 9000
    assert cfg.llm.model == "llama-3.3-70b-versatile"
    assert cfg.llm.temperature == 0.1
    assert cfg.llm.api_key == "gsk_test"
    assert cfg.admin_password == "pw"
    assert cfg.bias.refresh_interval_min == 15
    assert cfg.bias.background is False
    assert cfg.source.realized_price_cookie == "c=1"
    assert cfg.bot.mode == "proxy"


def test_build_bot_modes(orchestrator):
    cfg = Cfg()
    cfg.bot.token = "123:abc"
    assert isinstance(build_bot(cfg, "proxy").handler, ProxyHandler)
    assert isinstance(build_bot(cfg, "direct", orchestrator=orchestrator).handler, DirectHandler)
    with pytest.raises(ValueError):
        build_bot(cfg, "webhook")


def test_standalone_direct_bot_carries_bias_refresher():
    runner = build_bot(Cfg(bot=BotCfg(token="123:abc")), "direct")
    assert runner.refresher is not None
    assert runner.refresher.interval_sec == 3600
    assert runner.refresher.policy.max_attempts == 4

    quiet = Cfg(bias=BiasCfg(background=False), bot=BotCfg(token="123:abc"))
    assert build_bot(quiet, "direct").refresher is None
    assert build_bot(Cfg(bot=BotCfg(token="123:abc")), "proxy").refresher is None


def test_in_process_bot_leaves_refresher_to_app(orchestrator):
    runner = build_bot(Cfg(bot=BotCfg(token="123:abc")), "direct", orchestrator=orchestrator)
    assert runner.refresher is None
