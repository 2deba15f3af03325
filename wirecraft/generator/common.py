"""Settings every backend derives the same way from a compiled protocol."""

from dataclasses import dataclass

from .compiler import CompiledField, CompiledMessage, CompiledProtocol
from .grammar import unescape
from .types import NetworkErrorPolicy, Transport


@dataclass(frozen=True)
class ClientSettings:
    port: int
    timeout_ms: int | None
    keep_alive: bool
    read_until_close: bool
    retry_attempts: int
    retry_delay_ms: int
    handshake_send: str | None
    handshake_expect: str | None
    goodbye: str | None


def client_settings(protocol: CompiledProtocol) -> ClientSettings:
    spec = protocol.spec
    connection = spec.connection
    handling = spec.error_handling

    retry_attempts = 0
    retry_delay = 0
    if handling.on_network_error == NetworkErrorPolicy.RETRY:
        retry_attempts = handling.retry_attempts or 0
        retry_delay = handling.retry_delay or 0

    handshake_send = handshake_expect = None
    if connection.handshake is not None and connection.handshake.required:
        if connection.handshake.client_sends:
            handshake_send = unescape(connection.handshake.client_sends)
        if connection.handshake.server_responds:
            handshake_expect = unescape(connection.handshake.server_responds)

    termination = connection.termination
    goodbye = None
    if termination is not None and termination.client_sends:
        goodbye = unescape(termination.client_sends)

    # Without response types there is nothing to detect the end of a reply by
    read_until_close = not protocol.responses or (
        termination is not None and termination.close_connection
    )

    return ClientSettings(
        port=spec.protocol.port,
        timeout_ms=connection.timeout,
        keep_alive=connection.keep_alive,
        read_until_close=read_until_close,
        retry_attempts=retry_attempts,
        retry_delay_ms=retry_delay,
        handshake_send=handshake_send,
        handshake_expect=handshake_expect,
        goodbye=goodbye,
    )


def backend_warnings(protocol: CompiledProtocol, display_name: str) -> tuple[str, ...]:
    """Warnings attached to every language's artifacts."""
    warnings = [str(d) for d in protocol.diagnostics]
    if protocol.spec.connection.transport == Transport.UDP:
        warnings.append(f"{display_name} client uses TCP streams; UDP is not supported")
    for message in protocol.messages:
        if message.skip_reason:
            warnings.append(f"{message.name} tests are skipped: {message.skip_reason}")
    return tuple(warnings)


def doc_text(text: str | None) -> str:
    """Collapse a description to one line safe inside any comment syntax."""
    if not text:
        return ""
    collapsed = " ".join(text.split())
    return collapsed.replace('"""', "'''").replace("*/", "* /")


def pattern_fields(protocol: CompiledProtocol) -> list[tuple[CompiledMessage, CompiledField]]:
    """Fields whose values must match a regular expression, in declaration order."""
    return [
        (message, field)
        for message in protocol.messages
        for field in message.fields
        if field.constraints.pattern
    ]
