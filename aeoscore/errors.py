"""Error taxonomy for audit and visibility runs."""

from __future__ import annotations


class AeoError(RuntimeError):
    pass


class TenantNotFound(AeoError):
    def __init__(self, domain: str) -> None:
        super().__init__(f"Tenant not found: {domain}")
        self.domain = domain


class QuotaExceeded(AeoError):
    """Monthly visibility check allowance is used up; not retriable."""

    def __init__(self, limit: int, used: int) -> None:
        super().__init__(
            f"Visibility check limit reached ({limit}/month). Upgrade your plan for more checks."
        )
        self.limit = limit
        self.used = used

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)


class CatalogFetchError(AeoError):
    pass


class ProviderError(AeoError):
    """Raised by an answer engine when a probe call fails."""

    def __init__(self, platform: str, message: str) -> None:
        super().__init__(f"{platform}: {message}")
        self.platform = platform


class NoEnginesConfigured(AeoError):
    pass
