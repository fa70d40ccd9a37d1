import os

# Keep a developer's .env from leaking into the tests
os.environ["POW_ENV"] = "dev"

import asyncio
import pytest
from powgate.config import PowSettings

# Source value "UA|171000|en-US|localhost" with a 1000s window
SCENARIO_NOW = 171500
SCENARIO_WINDOW = 1000
SCENARIO_SOURCE = "UA|171000|en-US|localhost"
# First nonce whose hash starts with "00" (0016d26f...)
SCENARIO_NONCE = 365
# sha256("UA|171000|en-US|localhost:0") starts with "b8fe"
SCENARIO_BAD_NONCE = 0


class FakeResolver:
    """A fake DNS resolver for testing."""

    def __init__(self, hostnames=None, addresses=None, delay=0.0, raise_error=None):
        self.hostnames = hostnames or {}
        self.addresses = addresses or {}
        self.delay = delay
        self.raise_error = raise_error
        self.reverse_calls = []
        self.forward_calls = []

    async def reverse(self, ip):
        self.reverse_calls.append(ip)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raise_error:
            raise self.raise_error
        return self.hostnames.get(ip)

    async def forward(self, hostname):
        self.forward_calls.append(hostname)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raise_error:
            raise self.raise_error
        return self.addresses.get(hostname, [])


GOOGLEBOT_IP = "66.249.66.1"
GOOGLEBOT_HOST = "crawl-66-249-66-1.googlebot.com"
GOOGLEBOT_UA = (
    "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
)
BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"


@pytest.fixture
def make_settings():
    """Build settings without reading the environment's optional values."""

    def _make(**overrides):
        values = {
            "difficulty": 2,
            "cookie_name": "pow",
            "cookie_duration": 5,
            "timestamp_window": SCENARIO_WINDOW,
            "bot_verification_level": 2,
            "bot_dns_timeout": 0.2,
        }
        values.update(overrides)
        return PowSettings(**values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def fixed_clock():
    return lambda: SCENARIO_NOW


@pytest.fixture
def googlebot_resolver():
    """Resolver where the Googlebot address round-trips cleanly."""
    return FakeResolver(
        hostnames={GOOGLEBOT_IP: GOOGLEBOT_HOST},
        addresses={GOOGLEBOT_HOST: [GOOGLEBOT_IP, "2001:4860:4801:10::1"]},
    )
