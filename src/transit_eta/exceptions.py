"""Exception hierarchy for feed fetching and decoding.

Clients raise these; estimators and providers convert them into failure
results or empty arrivals. Nothing here is meant to reach the caller of
the estimation pipeline.
"""


class TransitError(Exception):
    """Base class for all transit-eta errors."""


class ConfigurationError(TransitError):
    """A required upstream credential or setting is missing."""


class UpstreamError(TransitError):
    """An upstream API answered with a non-success status or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(UpstreamError):
    """Upstream rejected our credentials (401/403)."""


class RateLimitError(UpstreamError):
    """Upstream rate limit exceeded (429)."""


class FeedDecodeError(TransitError):
    """A feed payload was not in the expected format."""


def classify_http_error(api_name: str, status_code: int) -> UpstreamError:
    """Map an HTTP status code to a descriptive UpstreamError.

    Args:
        api_name: Human-readable API name used in the message (e.g. "BODS SIRI-VM").
        status_code: HTTP status code of the failed response.

    Returns:
        The matching UpstreamError subclass instance.
    """
    if status_code in (401, 403):
        return AuthenticationError(
            f"{api_name} authentication failed. Please check your API key.", status_code
        )
    if status_code == 429:
        return RateLimitError(
            f"{api_name} rate limit exceeded. Please try again later.", status_code
        )
    if status_code == 404:
        return UpstreamError(f"Resource not found on {api_name}.", status_code)
    if status_code >= 500:
        return UpstreamError(
            f"{api_name} is temporarily unavailable. Please try again later.", status_code
        )
    return UpstreamError(f"{api_name} error: {status_code}", status_code)
