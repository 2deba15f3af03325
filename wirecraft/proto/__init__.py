"""Runtime support imported by generated Python protocol code.

This package has no third-party dependencies so that ``wirecraft runtime``
can copy it next to generated code.
"""

from .checks import (
    PREVIEW_LENGTH,
    Invalid,
    check_boolean,
    check_bytes,
    check_enum,
    check_number,
    check_string,
    coerce_boolean,
    coerce_bytes,
    coerce_enum,
    coerce_number,
    coerce_string,
    decode_text,
    encode_value,
    fail,
    find_stop,
    parse_boolean,
    parse_integer,
    preview,
)
from .client import ProtocolClient
from .errors import (
    ConnectionFailedError,
    HandshakeError,
    InvalidMessageError,
    ProtocolError,
    RequestTimeoutError,
)
from .pool import Connection, ConnectionPool, open_connection
from .results import (
    FieldError,
    ParseFailure,
    ParseResult,
    ParseSuccess,
    SerializeFailure,
    SerializeResult,
    SerializeSuccess,
)

__all__ = [
    "PREVIEW_LENGTH",
    "Connection",
    "ConnectionFailedError",
    "ConnectionPool",
    "FieldError",
    "HandshakeError",
    "Invalid",
    "InvalidMessageError",
    "ParseFailure",
    "ParseResult",
    "ParseSuccess",
    "ProtocolClient",
    "ProtocolError",
    "RequestTimeoutError",
    "SerializeFailure",
    "SerializeResult",
    "SerializeSuccess",
    "check_boolean",
    "check_bytes",
    "check_enum",
    "check_number",
    "check_string",
    "coerce_boolean",
    "coerce_bytes",
    "coerce_enum",
    "coerce_number",
    "coerce_string",
    "decode_text",
    "encode_value",
    "fail",
    "find_stop",
    "open_connection",
    "parse_boolean",
    "parse_integer",
    "preview",
]
