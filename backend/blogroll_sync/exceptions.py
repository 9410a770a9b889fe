"""Custom exceptions for Blogroll Sync."""


class SSRFProtectionError(Exception):
    """Raised when a URL is rejected by the private-host policy.

    The OPML endpoint is fetched server-side, so a URL that points at
    localhost, a private network or a cloud metadata address is refused
    when private-host blocking is enabled.
    """
    pass


class UnsafeURLError(ValueError):
    """Raised when a URL is well-formed but not acceptable as an OPML endpoint.

    Covers embedded credentials and ports outside the allowed set.
    """
    pass
