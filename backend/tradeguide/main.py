from __future__ import annotations

import hmac
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .bias import BiasRefresher, BiasStore
from .chat import ChatOrchestrator
from .config import Cfg, load_config
from .errors import AuthorizationError, LLMInvocationError, ValidationError
from .llm import LLMClient
from .logs import log
from .providers.market_source import SwingTradeSource
from .schemas import ChatIn, ErrorOut, SetBiasIn, SetBiasOut


def _password_ok(cfg: Cfg, password) -> bool:
    # an unset admin password locks the endpoint instead of opening it
    if not cfg.admin_password or not isinstance(password, str):
        return False
    return hmac.compare_digest(password.encode(), cfg.admin_password.encode())


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
def create_app(cfg: Optional[Cfg] = None, store: Optional[BiasStore] = None, source=None, llm=None,
               orchestrator: Optional[ChatOrchestrator] = None) -> FastAPI:
    cfg = cfg or load_config()
    store = store or BiasStore.from_config(cfg.assets, cfg.bias)
    source = source or SwingTradeSource(cfg.source)
    llm = llm or LLMClient(cfg.llm)
    orch = orchestrator or ChatOrchestrator(cfg, store, source, llm)
    refresher = BiasRefresher.from_config(store, source, cfg.bias)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if cfg.bias.background:
            refresher.start()
        try:
            yield
        finally:
            refresher.stop()

    app = FastAPI(title="TradeGuide", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_methods=["*"], allow_headers=["*"],
    )
    app.state.cfg = cfg
    app.state.store = store
    app.state.orchestrator = orch
    app.state.refresher = refresher

    # ---- Errors ----

    @app.exception_handler(AuthorizationError)
    async def _unauthorized(request: Request, exc: AuthorizationError):
        return JSONResponse(status_code=403, content={"error": str(exc) or "Unauthorized"})

    @app.exception_handler(ValidationError)
    async def _invalid(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=ErrorOut(error=exc.message, allowed=exc.allowed).model_dump())

    # ---- API ----

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/admin/set-bias", response_model=SetBiasOut)
    def set_bias(body: SetBiasIn):
        if not _password_ok(cfg, body.password):
            log.warning("admin set-bias rejected for %s", body.asset)
            raise AuthorizationError("Unauthorized")
        bias = store.set(body.asset, body.bias)
        return SetBiasOut(asset=body.asset, bias=bias.value)

    @app.get("/bias")
    def get_bias():
        return store.snapshot()

    @app.post("/chat")
    def chat(body: ChatIn):
        # chat errors are HTTP 200 with an "error" field
        try:
            return orch.handle(body.asset, body.question).model_dump()
        except ValidationError as e:
            return ErrorOut(error=e.message, allowed=e.allowed).model_dump()
        except LLMInvocationError as e:
            log.error("LLM error: %s", e)
            return ErrorOut(error="LLM error").model_dump()

    return app


app = create_app()
