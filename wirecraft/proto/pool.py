"""Connection pool keyed by host:port."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol


class PooledConnection(Protocol):
    @property
    def closed(self) -> bool: ...

    def close(self) -> None: ...


class Connection:
    """A TCP stream pair plus a lock that serializes request/response exchanges."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer
        self.lock = asyncio.Lock()
        self.ready = False

    @property
    def closed(self) -> bool:
        return self.writer.is_closing() or self.reader.at_eof()

    def close(self) -> None:
        self.writer.close()


async def open_connection(host: str, port: int) -> Connection:
    reader, writer = await asyncio.open_connection(host, port)
    return Connection(reader, writer)


class ConnectionPool:
    """Holds at most one live connection per host:port.

    A connection the peer has closed is treated as absent. When concurrent
    callers race to populate the same key, the first stored connection wins
    and the others are closed.
    """

    def __init__(
        self, connect: Callable[[str, int], Awaitable[PooledConnection]] = open_connection
    ) -> None:
        self._connect = connect
        self._connections: dict[str, PooledConnection] = {}

    @staticmethod
    def key(host: str, port: int) -> str:
        return f"{host}:{port}"

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, key: object) -> bool:
        return key in self._connections

    def get(self, host: str, port: int) -> PooledConnection | None:
        """Return the live pooled connection for host:port without connecting."""
        return self._live(self.key(host, port))

    def _live(self, key: str) -> PooledConnection | None:
        existing = self._connections.get(key)
        if existing is None:
            return None
        if existing.closed:
            del self._connections[key]
            existing.close()
            return None
        return existing

    async def acquire(self, host: str, port: int) -> PooledConnection:
        key = self.key(host, port)
        existing = self._live(key)
        if existing is not None:
            return existing

        connection = await self._connect(host, port)

        winner = self._live(key)
        if winner is not None:
            connection.close()
            return winner
        self._connections[key] = connection
        return connection

    def discard(self, host: str, port: int, connection: PooledConnection | None = None) -> None:
        """Close a connection and forget it, if it is still the pooled one."""
        key = self.key(host, port)
        current = self._connections.get(key)
        if connection is None or current is connection:
            self._connections.pop(key, None)
        if connection is not None:
            connection.close()
        elif current is not None:
            current.close()

    def close_all(self) -> None:
        connections = list(self._connections.values())
        self._connections.clear()
        for connection in connections:
            connection.close()
