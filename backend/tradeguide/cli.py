from __future__ import annotations

import argparse
import threading

import uvicorn

from .bot.handlers import DirectHandler, ProxyHandler
from .bot.runner import BotRunner
from .bot.telegram import TelegramClient
from .config import Cfg, load_config
from .logs import log


def build_bot(cfg: Cfg, mode: str, orchestrator=None, refresher=None) -> BotRunner:
    """
    Wire a BotRunner for the given mode.

    A direct bot built without an orchestrator gets its own app graph; its bias
    refresher then runs with the bot, since no API lifespan will start it.
    """
    client = TelegramClient(cfg.bot.token, timeout=cfg.bot.timeout_sec)
    if mode == "proxy":
        handler = ProxyHandler(cfg.bot.backend_url, cfg.assets, timeout=cfg.bot.timeout_sec)
    elif mode == "direct":
        if orchestrator is None:
            from .main import create_app
            app = create_app(cfg)
            orchestrator = app.state.orchestrator
            if refresher is None and cfg.bias.background:
                refresher = app.state.refresher
        handler = DirectHandler(orchestrator)
    else:
        raise ValueError(f"unknown bot mode {mode!r} (expected direct or proxy)")
    return BotRunner(client, handler, poll_timeout=cfg.bot.poll_timeout_sec, refresher=refresher)


def main(argv=None) -> None:
    ap = argparse.ArgumentParser(prog="tradeguide", description="TradeGuide API server and Telegram bot")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("serve", help="run the HTTP API")
    sp.add_argument("--host", default=None)
    sp.add_argument("--port", type=int, default=None)
    sp.add_argument("--with-bot", action="store_true", help="also run the Telegram bot in-process")

    bp = sub.add_parser("bot", help="run only the Telegram bot")
    bp.add_argument("--mode", choices=["direct", "proxy"], default=None)

    args = ap.parse_args(argv)
    cfg = load_config()

    if args.cmd == "bot":
        build_bot(cfg, args.mode or cfg.bot.mode).run()
        return

    from .main import create_app
    app = create_app(cfg)
    if args.with_bot:
        runner = build_bot(cfg, "direct", orchestrator=app.state.orchestrator)
        threading.Thread(target=runner.run, name="telegram-bot", daemon=True).start()
    port = args.port or cfg.port
    log.info("Agent + Bot running on port %d" if args.with_bot else "API running on port %d", port)
    uvicorn.run(app, host=args.host or cfg.host, port=port)


if __name__ == "__main__":
    main()
