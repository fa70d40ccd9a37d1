"""
Crawler exemption with tiered verification.

A request that claims to be a known crawler by User-Agent can skip the
challenge. How much of that claim is checked depends on the level:

    0 - never exempt anyone
    1 - User-Agent substring match only
    2 - plus reverse DNS of the client address must match the bot's pattern
    3 - plus forward DNS of that hostname must resolve back to the address

Each lookup has a hard deadline. A failed or timed-out lookup denies the
exemption (the client gets a challenge), it never fails the request.
"""

import asyncio
import logging
import re
from enum import IntEnum
from typing import Mapping, Optional

from powgate.resolver import Resolver, SystemResolver, is_ip_address, normalize_ip

logger = logging.getLogger(__name__)


class VerificationLevel(IntEnum):
    NONE = 0
    USER_AGENT = 1
    REVERSE_DNS = 2
    ROUNDTRIP_DNS = 3


class BotVerifier:
    """
    Decide whether a request comes from a verified crawler.

    Args:
        patterns: Bot name -> regex the reverse-DNS hostname must match
        level: How much of the crawler's claim to verify
        dns_timeout: Deadline for the reverse lookup (seconds); the forward
            lookup gets twice as long
        resolver: DNS collaborator, defaults to the system resolver
    """

    def __init__(
        self,
        patterns: Mapping[str, re.Pattern],
        level: VerificationLevel = VerificationLevel.REVERSE_DNS,
        dns_timeout: float = 0.5,
        resolver: Optional[Resolver] = None,
    ):
        # Sorted so the first matching name does not depend on config order
        self.patterns = {
            name.lower(): patterns[name] for name in sorted(patterns, key=str.lower)
        }
        self.level = VerificationLevel(level)
        self.dns_timeout = dns_timeout
        self.resolver = resolver or SystemResolver()

    def identify(self, user_agent: Optional[str]) -> Optional[str]:
        """Return the first bot name found in the User-Agent, if any."""
        if not user_agent:
            return None

        ua = user_agent.lower()
        for name in self.patterns:
            if name in ua:
                return name
        return None

    async def is_bot(self, user_agent: Optional[str], remote_addr: Optional[str]) -> bool:
        if self.level == VerificationLevel.NONE:
            return False

        bot_name = self.identify(user_agent)
        if bot_name is None:
            return False

        if self.level == VerificationLevel.USER_AGENT:
            logger.debug(f"Accepting {bot_name} on User-Agent alone")
            return True

        # Level 2+: reverse DNS
        if not remote_addr or not is_ip_address(remote_addr):
            logger.debug(f"No usable address for {bot_name} verification: {remote_addr!r}")
            return False

        hostname = await self._reverse_lookup(remote_addr)
        if not hostname:
            return False

        if not self.patterns[bot_name].search(hostname):
            logger.info(
                f"Claimed {bot_name} from {remote_addr} resolved to "
                f"{hostname}, which does not match its pattern"
            )
            return False

        if self.level == VerificationLevel.REVERSE_DNS:
            return True

        # Level 3: forward DNS must point back at the client
        return await self._verify_roundtrip(remote_addr, hostname)

    async def _reverse_lookup(self, ip: str) -> Optional[str]:
        try:
            return await asyncio.wait_for(
                self.resolver.reverse(ip), timeout=self.dns_timeout
            )
        except asyncio.TimeoutError:
            logger.info(f"Reverse DNS for {ip} timed out after {self.dns_timeout}s")
            return None
        except Exception as e:
            logger.warning(f"Reverse DNS for {ip} failed: {e}")
            return None

    async def _verify_roundtrip(self, ip: str, hostname: str) -> bool:
        timeout = self.dns_timeout * 2
        try:
            resolved = await asyncio.wait_for(
                self.resolver.forward(hostname), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.info(f"Forward DNS for {hostname} timed out after {timeout}s")
            return False
        except Exception as e:
            logger.warning(f"Forward DNS for {hostname} failed: {e}")
            return False

        expected = normalize_ip(ip)
        if any(normalize_ip(address) == expected for address in resolved):
            return True

        logger.info(f"Forward DNS for {hostname} does not include {ip}")
        return False
