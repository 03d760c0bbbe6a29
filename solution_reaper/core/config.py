"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from solution_reaper.store.web_api import DEFAULT_API_VERSION


@dataclass(frozen=True)
class ReaperSettings:
    """Connection settings for the Web API store.

    Reads from environment variables:
        SOLUTION_REAPER_URL        : organisation URL, e.g. https://contoso.crm.dynamics.com
        SOLUTION_REAPER_TOKEN      : bearer token (acquired by the caller)
        SOLUTION_REAPER_API_VERSION: Web API version (default: 9.2)
        SOLUTION_REAPER_TIMEOUT    : per-request timeout in seconds (default: 30)
    """

    url: str | None = None
    token: str | None = None
    api_version: str = DEFAULT_API_VERSION
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> ReaperSettings:
        timeout = os.environ.get("SOLUTION_REAPER_TIMEOUT", "30")
        try:
            timeout_s = float(timeout)
        except ValueError:
            raise ValueError(
                f"SOLUTION_REAPER_TIMEOUT must be a number, got {timeout!r}"
            ) from None
        return cls(
            url=os.environ.get("SOLUTION_REAPER_URL") or None,
            token=os.environ.get("SOLUTION_REAPER_TOKEN") or None,
            api_version=os.environ.get("SOLUTION_REAPER_API_VERSION", DEFAULT_API_VERSION),
            timeout=timeout_s,
        )

    def with_overrides(self, **overrides) -> ReaperSettings:
        """Copy with every non-``None`` override applied (CLI options)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
