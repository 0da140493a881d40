"""Errors raised while talking to the instance metadata service."""

from __future__ import annotations


class ExporterError(Exception):
    """Base error for metadata_exporter."""


class AuthError(ExporterError):
    """Metadata token handshake failed. Aborts the scrape cycle."""


class TokenError(AuthError):
    """
    TokenError 类。

    Raised when the token endpoint answers with a non-200 status or cannot be
    reached at all (``status_code`` is ``None`` in that case).
    """

    def __init__(self, status_code: int | None, body: str) -> None:
        """
        初始化对象。

        Args:
            status_code: HTTP status returned by the token endpoint.
            body: Response body, kept as opaque diagnostic text.
        """
        super().__init__(f"Couldn't acquire token ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class ResolutionError(ExporterError):
    """Instance id could not be resolved. Aborts the scrape cycle."""


class TransportError(ExporterError):
    """
    TransportError 类。

    Network-level failure reaching a metadata path.
    """

    def __init__(self, path: str, reason: str) -> None:
        """
        初始化对象。

        Args:
            path: Metadata path that was requested.
            reason: Underlying transport failure.
        """
        super().__init__(f"{path} transport error: {reason}")
        self.path = path
        self.reason = reason


class StatusError(ExporterError):
    """
    StatusError 类。

    Metadata path answered with an unexpected non-200 status.
    """

    def __init__(self, path: str, status_code: int) -> None:
        """
        初始化对象。

        Args:
            path: Metadata path that was requested.
            status_code: HTTP status returned.
        """
        super().__init__(f"{path} returned status {status_code}")
        self.path = path
        self.status_code = status_code


class NotFoundError(StatusError):
    """Metadata path answered 404. A legitimate steady state."""

    def __init__(self, path: str) -> None:
        super().__init__(path, 404)


class DecodeError(ExporterError):
    """Metadata payload is not valid for the expected record type."""
