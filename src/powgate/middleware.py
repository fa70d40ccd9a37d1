"""
ASGI middleware that puts the admission decision in front of an app.

    app = FastAPI()
    app.add_middleware(ProofOfWorkMiddleware, settings=PowSettings(difficulty=4.5))

Admitted requests reach the app untouched. Everything else gets a 200 HTML
challenge page with an ``X-Proof-of-Work: required`` header.
"""

import logging
import time
from typing import Callable, Optional

from starlette.datastructures import Headers
from starlette.requests import cookie_parser
from starlette.responses import HTMLResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from powgate.config import PowSettings, get_settings
from powgate.decider import AdmissionDecider, Admit, Challenge, RequestInfo
from powgate.page import ChallengePage
from powgate.resolver import Resolver

logger = logging.getLogger(__name__)

POW_HEADER = "X-Proof-of-Work"


def get_client_ip(scope: Scope, headers: Headers, trust_proxy_headers: bool = False) -> Optional[str]:
    """
    Extract the client IP address for crawler verification.

    Proxy headers are only honoured when ``trust_proxy_headers`` is set, since
    anyone can send them. In order of preference:
    1. CF-Connecting-IP (Cloudflare)
    2. X-Real-IP (nginx, common convention)
    3. X-Forwarded-For (take first IP)
    4. The direct peer address
    """
    if trust_proxy_headers:
        cf_ip = headers.get("CF-Connecting-IP")
        if cf_ip:
            return cf_ip.strip()

        real_ip = headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        forwarded_for = headers.get("X-Forwarded-For")
        if forwarded_for:
            first_ip = forwarded_for.split(",")[0].strip()
            if first_ip:
                return first_ip

    client = scope.get("client")
    if client:
        return client[0]

    return None


def request_info_from_scope(scope: Scope, trust_proxy_headers: bool = False) -> RequestInfo:
    headers = Headers(scope=scope)
    cookie_header = headers.get("cookie")
    return RequestInfo(
        user_agent=headers.get("user-agent"),
        accept_language=headers.get("accept-language"),
        host=headers.get("host"),
        remote_addr=get_client_ip(scope, headers, trust_proxy_headers),
        cookies=cookie_parser(cookie_header) if cookie_header else {},
    )


class ProofOfWorkMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        settings: Optional[PowSettings] = None,
        resolver: Optional[Resolver] = None,
        page: Optional[ChallengePage] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.app = app
        self.settings = settings or get_settings()
        self.decider = AdmissionDecider(self.settings, resolver=resolver, clock=clock)
        # Templates load here so a missing file fails at startup
        self.page = page or ChallengePage.from_settings(self.settings)

    def _is_exempt(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.settings.exempt_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "/") or "/"
        if self._is_exempt(path):
            await self.app(scope, receive, send)
            return

        request = request_info_from_scope(scope, self.settings.trust_proxy_headers)
        try:
            decision = await self.decider.decide(request)
        except Exception:
            logger.exception(f"Admission decision failed for {path}, serving a challenge")
            decision = self.decider.challenge_for(request)

        if isinstance(decision, Admit):
            await self.app(scope, receive, send)
            return

        response = self._challenge_response(decision)
        await response(scope, receive, send)

    def _challenge_response(self, challenge: Challenge) -> HTMLResponse:
        return HTMLResponse(
            self.page.render(challenge),
            status_code=200,
            headers={POW_HEADER: "required"},
        )
