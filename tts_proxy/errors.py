"""Error taxonomy for the proxy request path."""

from typing import Optional


class ProxyError(Exception):
    """Base class for errors raised by the proxy."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ProxyError):
    """Caller input is malformed. Never recorded in the metric store."""

    status_code = 400


class UpstreamError(ProxyError):
    """The provider answered with an error status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class TransportError(ProxyError):
    """No structured response could be obtained from the provider."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class SnapshotWriteError(ProxyError):
    """A metrics snapshot could not be written."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path


class EmptyExportError(ProxyError):
    """There are no records to export."""

    status_code = 404

    def __init__(self, message: str = "No metrics available"):
        super().__init__(message)
