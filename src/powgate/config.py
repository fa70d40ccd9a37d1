import re
from functools import lru_cache
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Literal, Optional
from pydantic import Field, model_validator

from powgate.bots import VerificationLevel
from powgate.source import SECONDS_PER_DAY

load_dotenv()


def default_bot_patterns() -> Dict[str, re.Pattern]:
    return {
        "googlebot": re.compile(r"crawl.*google\.com$"),
        "applebot": re.compile(r"applebot.*apple\.com$"),
        "bingbot": re.compile(r"bingbot.*bing\.com$"),
    }


class PowSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="POW_", extra="ignore", frozen=True
    )

    # Environment
    env: Literal["dev", "prod"] = "dev"

    # Challenge
    difficulty: float = Field(4, ge=0, allow_inf_nan=False)
    cookie_name: str = Field("pow", min_length=1)
    cookie_duration: int = Field(5, gt=0)  # Days
    timestamp_window: Optional[int] = Field(None, gt=0)  # Seconds

    # Bot exemption
    bot_patterns: Dict[str, re.Pattern] = Field(default_factory=default_bot_patterns)
    bot_verification_level: VerificationLevel = VerificationLevel.REVERSE_DNS
    bot_dns_timeout: float = Field(0.5, gt=0)  # Seconds, forward lookup gets 2x

    # Challenge page
    js_file: Optional[str] = None
    html_file: Optional[str] = None
    css: Optional[str] = None

    # Serving layer
    exempt_paths: List[str] = Field(default_factory=list)
    trust_proxy_headers: bool = False

    # Demo server
    host: str = "127.0.0.1"
    port: int = 8000

    @model_validator(mode="after")
    def validate_bot_patterns(self) -> "PowSettings":
        """Fail fast on empty bot names, they would match every User-Agent."""
        for name in self.bot_patterns:
            if not name.strip():
                raise ValueError("bot_patterns keys must be non-empty")
        return self

    @model_validator(mode="after")
    def validate_prod_verification(self) -> "PowSettings":
        """Fail fast if prod would exempt crawlers on User-Agent alone."""
        if self.env == "prod" and self.bot_verification_level == VerificationLevel.USER_AGENT:
            raise ValueError(
                "bot_verification_level=1 trusts any User-Agent and is not allowed in production"
            )
        return self

    @property
    def window_seconds(self) -> int:
        """Timestamp bucket size; defaults to the cookie lifetime."""
        if self.timestamp_window is not None:
            return self.timestamp_window
        return self.cookie_duration * SECONDS_PER_DAY


@lru_cache
def get_settings() -> PowSettings:
    return PowSettings()
