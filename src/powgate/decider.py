"""
Admission decision: let a request through or send it a challenge.

Order matters and is the whole point of this module:

1. A proof cookie, if present, alone decides the outcome. A valid proof is
   admitted, an invalid one is challenged even if the User-Agent claims to
   be a crawler.
2. Only requests without a cookie are checked for a verified crawler.
3. Everything else is challenged.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Union

from powgate.bots import BotVerifier
from powgate.challenge import DifficultySpec, verify_proof
from powgate.config import PowSettings
from powgate.resolver import Resolver
from powgate.source import build_source_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestInfo:
    """The request attributes an admission decision depends on."""
    user_agent: Optional[str] = None
    accept_language: Optional[str] = None
    host: Optional[str] = None
    remote_addr: Optional[str] = None
    cookies: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Admit:
    reason: str  # "proof" or "bot"


@dataclass(frozen=True)
class Challenge:
    """Everything a challenge page has to embed."""
    source_value: str
    difficulty: float
    cookie_name: str
    cookie_duration: int  # Days
    reason: str  # "missing" or "invalid"


Decision = Union[Admit, Challenge]


class AdmissionDecider:
    """
    Stateless admit/challenge decision for a single request.

    Args:
        settings: Immutable configuration
        resolver: DNS collaborator for crawler verification
        clock: Returns the current Unix time; injectable for tests
    """

    def __init__(
        self,
        settings: PowSettings,
        resolver: Optional[Resolver] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.difficulty = DifficultySpec.from_value(settings.difficulty)
        self.bot_verifier = BotVerifier(
            settings.bot_patterns,
            level=settings.bot_verification_level,
            dns_timeout=settings.bot_dns_timeout,
            resolver=resolver,
        )
        self.clock = clock

    def source_value(self, request: RequestInfo) -> str:
        return build_source_value(
            request.user_agent,
            request.accept_language,
            request.host,
            now=int(self.clock()),
            window=self.settings.window_seconds,
        )

    async def decide(self, request: RequestInfo) -> Decision:
        source_value = self.source_value(request)
        proof = request.cookies.get(self.settings.cookie_name)

        # Cookie first: if present, it alone decides
        if proof is not None:
            if verify_proof(source_value, proof, self.difficulty):
                logger.debug(f"Valid proof from {request.remote_addr}")
                return Admit(reason="proof")

            logger.info(f"Invalid proof from {request.remote_addr}, re-challenging")
            return self._challenge(source_value, reason="invalid")

        if await self.bot_verifier.is_bot(request.user_agent, request.remote_addr):
            logger.debug(f"Verified crawler {request.user_agent!r} from {request.remote_addr}")
            return Admit(reason="bot")

        return self._challenge(source_value, reason="missing")

    def challenge_for(self, request: RequestInfo, reason: str = "error") -> Challenge:
        """A fresh challenge without looking at proof or crawler status."""
        return self._challenge(self.source_value(request), reason=reason)

    def _challenge(self, source_value: str, reason: str) -> Challenge:
        return Challenge(
            source_value=source_value,
            difficulty=self.settings.difficulty,
            cookie_name=self.settings.cookie_name,
            cookie_duration=self.settings.cookie_duration,
            reason=reason,
        )
