"""Error kinds and exceptions raised by the ticker core and its adapters."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classification of failures the tracker reacts to."""

    CREDENTIALS_MISSING = "credentials_missing"
    AUTH_EXPIRED = "auth_expired"
    PERMISSION_DENIED = "permission_denied"
    MEETING_NOT_FOUND = "meeting_not_found"
    TRANSIENT = "transient"
    HANDSHAKE_TIMEOUT = "handshake_timeout"
    HANDSHAKE_FAILED = "handshake_failed"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    PERSISTENCE_FAILURE = "persistence_failure"


class TickerError(Exception):
    """Base class for classified ticker failures."""

    kind: ErrorKind = ErrorKind.TRANSIENT


class CredentialsMissingError(TickerError):
    kind = ErrorKind.CREDENTIALS_MISSING


class ParticipantPollError(TickerError):
    """A participant-count request failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthExpiredError(ParticipantPollError):
    kind = ErrorKind.AUTH_EXPIRED


class PermissionDeniedError(ParticipantPollError):
    kind = ErrorKind.PERMISSION_DENIED


class MeetingNotFoundError(ParticipantPollError):
    kind = ErrorKind.MEETING_NOT_FOUND


class TransientPollError(ParticipantPollError):
    kind = ErrorKind.TRANSIENT


class HandshakeError(TickerError):
    kind = ErrorKind.HANDSHAKE_FAILED


class HandshakeTimeoutError(HandshakeError):
    kind = ErrorKind.HANDSHAKE_TIMEOUT


class HandshakeFailedError(HandshakeError):
    kind = ErrorKind.HANDSHAKE_FAILED


class TokenExchangeError(TickerError):
    """The auth service did not hand out a bearer token."""

    kind = ErrorKind.TOKEN_EXCHANGE_FAILED

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(TickerError):
    kind = ErrorKind.PERSISTENCE_FAILURE


class InvalidTransitionError(ValueError):
    """Raised when the tracker is asked to move between incompatible phases."""


_STATUS_ERRORS: dict[int, type[ParticipantPollError]] = {
    401: AuthExpiredError,
    403: PermissionDeniedError,
    404: MeetingNotFoundError,
}


def poll_error_for_status(status_code: int, message: str) -> ParticipantPollError:
    """Map an HTTP status from the count service to a classified error."""
    error_cls = _STATUS_ERRORS.get(status_code, TransientPollError)
    return error_cls(message, status_code=status_code)
