"""Exception hierarchy shared by the client, engine and CLI."""

from __future__ import annotations


class RobinhoodExportError(Exception):
    """Base class for errors surfaced to the command line."""


class ApiError(RobinhoodExportError):
    """Remote API answered with a failure status or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (status={self.status_code}, url={self.url})"
        if self.url:
            return f"{base} (url={self.url})"
        return base


class FetchCancelled(RobinhoodExportError):
    """Raised by fetch functions once their cancellation token fired."""


__all__ = ["ApiError", "FetchCancelled", "RobinhoodExportError"]
