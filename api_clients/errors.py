# Exception types raised by the API clients and the download pipeline


class WaybackMirrorError(Exception):
    """Base class for all errors raised by this project."""


class IndexQueryError(WaybackMirrorError):
    """The CDX index endpoint answered with a non-2xx status."""

    def __init__(self, status_code, reason):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"CDX query failed: {status_code} {reason}")


class FetchError(WaybackMirrorError):
    """A replay URL kept failing after all attempts were used up."""

    def __init__(self, status_code, url):
        self.status_code = status_code
        self.url = url
        super().__init__(f"HTTP {status_code} at {url}")


class DeployError(WaybackMirrorError):
    """Deployment of a mirrored snapshot could not proceed."""
