"""Exceptions raised by normflux."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .actions import Rejected


class NormfluxError(Exception):
    """Base class for all normflux errors."""

    pass


class MalformedResponseError(NormfluxError, ValueError):
    """Raised when a server response does not have the expected record shape."""

    pass


class ReducerError(NormfluxError):
    """Raised when a command is dispatched while a reducer is running."""

    pass


class ThunkRejectedError(NormfluxError):
    """
    Raised by unwrap_result() for a rejected request.

    The rejected command is kept on ``command`` so callers can inspect the
    request id and original argument.
    """

    def __init__(self, command: "Rejected"):
        super().__init__(command.error or "Request rejected")
        self.command = command

    @property
    def error_type(self) -> str:
        return self.command.error_type
