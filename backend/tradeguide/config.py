from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from .models import Asset

ALLOWED_QUESTIONS = ["market trend", "entry strategy", "exit strategy", "risk management"]

class SourceCfg(BaseModel):
    signal_url: str = "https://www.swing-trade-crypto.site/premium_access"
    verify_ssl: bool = False
    realized_price_url: str = "https://www.bitcoinmagazinepro.com/django_plotly_dash/app/realized_price_sth/_dash-update-component"
    realized_price_origin: str = "https://www.bitcoinmagazinepro.com"
    realized_price_path: str = "/charts/short-term-holder-realized-price/"
    realized_price_cookie: str = ""
    realized_price_csrf: str = ""
    realized_price_fallback: Optional[float] = 123000.0
    timeout_sec: float = 20.0

class LLMCfg(BaseModel):
    base_url: str = "https://api.groq.com/openai/v1"
    api_key: str = ""
    model: str = "llama-3.1-8b-instant"
    temperature: float = 0.3
    max_tokens: int = 300
    timeout_sec: float = 30.0

class BiasCfg(BaseModel):
    admin_assets: list[str] = ["XAU", "XAG"]
    polled_asset: str = "BTC"
    mirrors: dict[str, str] = {"SPX": "BTC"}
    refresh_interval_min: float = 60.0
    retries: int = 3
    retry_delay_sec: float = 5.0
    background: bool = True

class BotCfg(BaseModel):
    token: str = ""
    mode: str = "direct"
    backend_url: str = "http://localhost:3000"
    poll_timeout_sec: int = 30
    timeout_sec: float = 60.0

class Cfg(BaseModel):
    assets: list[str] = [a.value for a in Asset]
    allowed_questions: list[str] = ALLOWED_QUESTIONS
    admin_password: str = ""
    host: str = "0.0.0.0"
    port: int = 3000
    source: SourceCfg = SourceCfg()
    llm: LLMCfg = LLMCfg()
    bias: BiasCfg = BiasCfg()
    bot: BotCfg = BotCfg()

CFG_PATH = Path(os.getenv("TRADEGUIDE_CONFIG", "config.yaml"))

# env var -> (section, field); section None means top level
ENV_OVERRIDES = {
    "GROQ_API_KEY": ("llm", "api_key"),
    "LLM_BASE_URL": ("llm", "base_url"),
    "LLM_MODEL": ("llm", "model"),
    "ADMIN_PASSWORD": (None, "admin_password"),
    "TELEGRAM_BOT_TOKEN": ("bot", "token"),
    "BACKEND_URL": ("bot", "backend_url"),
    "BOT_MODE": ("bot", "mode"),
    "BMP_COOKIE": ("source", "realized_price_cookie"),
    "BMP_CSRF": ("source", "realized_price_csrf"),
    "PORT": (None, "port"),
    "BIAS_BG": ("bias", "background"),
}

def _apply_env(data: dict, environ) -> dict:
    for var, (section, field) in ENV_OVERRIDES.items():
        val = environ.get(var)
        if val is None or val == "":
            continue
        if var == "BIAS_BG":
            val = val.strip().lower() in ("1", "true", "yes")
        target = data.setdefault(section, {}) if section else data
        target[field] = val
    return data

def load_config(path: Optional[Path] = None, environ=None) -> Cfg:
    load_dotenv()
    path = Path(path) if path else CFG_PATH
    data = {}
    if path.exists():
        data = yaml.safe_load(path.read_text()) or {}
    data = _apply_env(data, os.environ if environ is None else environ)
    return Cfg(**data)
