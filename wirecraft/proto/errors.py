"""Errors raised by generated clients."""

from typing import ClassVar

from .results import FieldError


class ProtocolError(RuntimeError):
    """Base class for protocol client failures; ``code`` is machine readable."""

    code: ClassVar[str] = "PROTOCOL_ERROR"


class ConnectionFailedError(ProtocolError):
    code = "CONNECTION_FAILED"


class RequestTimeoutError(ProtocolError):
    code = "TIMEOUT"


class HandshakeError(ProtocolError):
    code = "HANDSHAKE_FAILED"


class InvalidMessageError(ProtocolError):
    """Raised when a message fails validation before it is sent."""

    code = "INVALID_MESSAGE"

    def __init__(self, errors: tuple[FieldError, ...] | list[FieldError]):
        self.errors = tuple(errors)
        super().__init__("; ".join(str(e) for e in self.errors))
