"""Exceptions raised by the Moovey API client."""

from typing import Optional

FAILURE_NETWORK = "network"
FAILURE_REJECTED = "rejected"


class MooveyAPIError(RuntimeError):
    """A request to the Moovey API did not succeed."""

    failure_kind = FAILURE_NETWORK

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MooveyNetworkError(MooveyAPIError):
    """The request never produced a usable response (connection error, timeout, bad body)."""

    failure_kind = FAILURE_NETWORK


class MooveyRejectedError(MooveyAPIError):
    """The server answered but refused: non-2xx status or `success: false`."""

    failure_kind = FAILURE_REJECTED
