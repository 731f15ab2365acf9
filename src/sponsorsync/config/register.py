"""Settings for the published sponsor register."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

REGISTER_PAGE_TIMEOUT_SECONDS = 15.0
SNAPSHOT_DOWNLOAD_TIMEOUT_SECONDS = 120.0
USER_AGENT = "sponsorsync (+register reconciliation)"


def default_page_resilience() -> ResilienceConfig:
    return ResilienceConfig(
        name="register-page",
        timeout_seconds=REGISTER_PAGE_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        cache=CacheConfig(),
        default_headers={"User-Agent": USER_AGENT},
    )


def default_download_resilience() -> ResilienceConfig:
    # the CSV is large and changes under the same URL, so it is never cached
    return ResilienceConfig(
        name="register-snapshot",
        timeout_seconds=SNAPSHOT_DOWNLOAD_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=3, backoff_factor=1.0),
        cache=None,
        default_headers={"User-Agent": USER_AGENT},
    )


@dataclass(frozen=True)
class RegisterConfig:
    """Where the register page lives and how to talk to it."""

    page_url: str
    page_resilience: ResilienceConfig = field(default_factory=default_page_resilience)
    download_resilience: ResilienceConfig = field(default_factory=default_download_resilience)


def get_register_config() -> RegisterConfig:
    values = require_env_vars(("SPONSORSYNC_REGISTER_URL",))
    return RegisterConfig(page_url=values["SPONSORSYNC_REGISTER_URL"])
