"""
Error taxonomy for scraping and image proxying.
"""


class ScrapeError(Exception):
    """Base class for every failure the service reports to callers."""

    reason = "error"

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        if reason:
            self.reason = reason


class InputError(ScrapeError):
    """Missing or unparseable URL/handle supplied by the caller."""
    reason = "invalid_input"


class UpstreamError(ScrapeError):
    """The scraping actor could not produce a result."""
    reason = "upstream_failed"


class UpstreamAuthError(UpstreamError):
    """The actor API rejected our credentials (or none are configured)."""
    reason = "upstream_auth"


class UpstreamRunError(UpstreamError):
    """The actor run finished in a failed or aborted state."""

    def __init__(self, message: str, status: str | None = None):
        super().__init__(message)
        self.status = status


class UpstreamTimeoutError(UpstreamError):
    """The actor run did not finish within the configured budget."""
    reason = "upstream_timeout"


class EmptyResultError(ScrapeError):
    """The actor run succeeded but its dataset holds no items."""
    reason = "not_found"


class DomainNotAllowedError(ScrapeError):
    """Image proxy target host is not on the allow-list."""
    reason = "domain_not_allowed"

    def __init__(self, url: str):
        super().__init__(f"Domain not allowed: {url}")
        self.url = url
