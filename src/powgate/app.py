"""
Demo application protected by the proof-of-work gate.

Run: python -m powgate
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from powgate.config import PowSettings, get_settings
from powgate.middleware import ProofOfWorkMiddleware
from powgate.resolver import Resolver

logger = logging.getLogger(__name__)

LIVENESS_PATH = "/health/live"


def create_app(
    settings: Optional[PowSettings] = None,
    resolver: Optional[Resolver] = None,
    **middleware_kwargs,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="powgate",
        description="Demo site behind a proof-of-work challenge",
        version="0.21.0",
    )
    app.add_middleware(
        ProofOfWorkMiddleware,
        settings=settings,
        resolver=resolver,
        **middleware_kwargs,
    )

    @app.get("/", response_class=HTMLResponse)
    def index():
        return "<!doctype html><title>powgate</title><p>You made it through.</p>"

    @app.get(
        LIVENESS_PATH,
        tags=["Health"],
        summary="Liveness probe",
        description="Returns 200 if the service is running. Add it to POW_EXEMPT_PATHS for probes.",
    )
    def liveness_probe():
        return {"status": "alive"}

    logger.info(
        f"Proof-of-work gate enabled: difficulty={settings.difficulty}, "
        f"bot_verification_level={int(settings.bot_verification_level)}"
    )
    return app
