from __future__ import annotations


class ScrapeError(RuntimeError):
    """Base error for the scrape-job lifecycle; carries retryability."""

    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(ScrapeError):
    """Missing operator configuration (e.g. BRIGHTDATA_API_KEY)."""


class GatewayError(ScrapeError):
    """Vendor answered with an error, or with a body we cannot use."""


class GatewayTransportError(GatewayError):
    """Network-level failure talking to the vendor; safe to retry later."""

    retryable = True


class InvalidInputError(ValueError):
    """Caller input rejected before any external call."""


class JobNotFoundError(KeyError):
    def __init__(self, job_id: str) -> None:
        super().__init__(job_id)
        self.job_id = job_id

    def __str__(self) -> str:
        return "Job not found"
