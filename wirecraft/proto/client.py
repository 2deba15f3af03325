"""Base class for generated asyncio protocol clients."""

import asyncio
import contextlib
from typing import ClassVar

from .errors import ConnectionFailedError, HandshakeError, RequestTimeoutError
from .pool import Connection, ConnectionPool

READ_CHUNK = 4096


class ProtocolClient:
    """Request/response client over a pooled TCP connection.

    Generated subclasses fill in the class attributes from the protocol's
    connection and error-handling settings and override
    ``_response_complete`` to recognise the end of a response.
    """

    default_port: ClassVar[int] = 0
    default_timeout: ClassVar[float | None] = None
    keep_alive: ClassVar[bool] = False
    read_until_close: ClassVar[bool] = False
    retry_attempts: ClassVar[int] = 0
    retry_delay: ClassVar[float] = 0.0
    handshake_send: ClassVar[bytes | None] = None
    handshake_expect: ClassVar[bytes | None] = None
    goodbye: ClassVar[bytes | None] = None

    connection_error: ClassVar[type[ConnectionFailedError]] = ConnectionFailedError
    timeout_error: ClassVar[type[RequestTimeoutError]] = RequestTimeoutError
    handshake_error: ClassVar[type[HandshakeError]] = HandshakeError

    def __init__(
        self,
        host: str,
        port: int | None = None,
        *,
        timeout: float | None = None,
        pool: ConnectionPool | None = None,
    ) -> None:
        self.host = host
        self.port = port if port is not None else self.default_port
        self.timeout = timeout if timeout is not None else self.default_timeout
        self._pool = pool if pool is not None else ConnectionPool()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Open (or reuse) the pooled connection and run the handshake."""
        await self._connection(self.timeout)

    async def disconnect(self) -> None:
        connection = self._pool.get(self.host, self.port)
        if connection is None:
            return
        if self.goodbye and isinstance(connection, Connection):
            with contextlib.suppress(OSError):
                connection.writer.write(self.goodbye)
                await connection.writer.drain()
        self._pool.discard(self.host, self.port, connection)

    async def _connection(self, timeout: float | None) -> Connection:
        connection = None
        try:
            async with asyncio.timeout(timeout):
                connection = await self._pool.acquire(self.host, self.port)
                if isinstance(connection, Connection) and not connection.ready:
                    async with connection.lock:
                        if not connection.ready:
                            await self._handshake(connection)
                            connection.ready = True
        except TimeoutError as exc:
            self._release_unready(connection)
            raise self.timeout_error(
                f"Timed out connecting to {self.host}:{self.port} after {timeout}s"
            ) from exc
        except OSError as exc:
            self._release_unready(connection)
            raise self.connection_error(f"Cannot connect to {self.host}:{self.port}: {exc}") from exc
        except asyncio.CancelledError:
            self._release_unready(connection)
            raise
        return connection

    def _release_unready(self, connection: Connection | None) -> None:
        """Close a connection whose handshake did not finish, so it is never reused."""
        if isinstance(connection, Connection) and not connection.ready:
            self._pool.discard(self.host, self.port, connection)

    async def _handshake(self, connection: Connection) -> None:
        if self.handshake_send is None:
            return
        connection.writer.write(self.handshake_send)
        await connection.writer.drain()
        if self.handshake_expect is None:
            return

        received = bytearray()
        while self.handshake_expect not in received:
            chunk = await connection.reader.read(READ_CHUNK)
            if not chunk:
                self._pool.discard(self.host, self.port, connection)
                raise self.handshake_error(
                    f"Connection closed before handshake reply {self.handshake_expect!r}"
                )
            received += chunk

    async def request(self, payload: bytes, *, timeout: float | None = None) -> bytes:
        """Send a payload and return the raw response bytes.

        Connection failures and timeouts are retried ``retry_attempts`` times.
        """
        limit = timeout if timeout is not None else self.timeout
        attempt = 0
        while True:
            try:
                return await self._exchange(payload, limit)
            except (ConnectionFailedError, RequestTimeoutError):
                if attempt >= self.retry_attempts:
                    raise
                attempt += 1
                await asyncio.sleep(self.retry_delay)

    async def _exchange(self, payload: bytes, timeout: float | None) -> bytes:
        connection = await self._connection(timeout)
        try:
            async with asyncio.timeout(timeout):
                async with connection.lock:
                    connection.writer.write(payload)
                    await connection.writer.drain()
                    response = await self._read_response(connection)
        except TimeoutError as exc:
            self._pool.discard(self.host, self.port, connection)
            raise self.timeout_error(f"No response from {self.host}:{self.port} within {timeout}s") from exc
        except OSError as exc:
            self._pool.discard(self.host, self.port, connection)
            raise self.connection_error(f"Connection to {self.host}:{self.port} failed: {exc}") from exc
        except ConnectionFailedError:
            self._pool.discard(self.host, self.port, connection)
            raise
        except asyncio.CancelledError:
            self._pool.discard(self.host, self.port, connection)
            raise

        if not self.keep_alive or self.read_until_close:
            self._pool.discard(self.host, self.port, connection)
        return response

    async def _read_response(self, connection: Connection) -> bytes:
        buffer = bytearray()
        while True:
            chunk = await connection.reader.read(READ_CHUNK)
            if not chunk:
                if buffer:
                    return bytes(buffer)
                raise self.connection_error(
                    f"{self.host}:{self.port} closed the connection without responding"
                )
            buffer += chunk
            if not self.read_until_close and self._response_complete(bytes(buffer)):
                return bytes(buffer)

    def _response_complete(self, buffer: bytes) -> bool:
        """Return True once buffer holds a whole response."""
        return False
