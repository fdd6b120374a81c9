"""
Relay connection interface and its websocket implementation.

The relay matches a sender and a receiver by pair code and forwards their
frames in order. It is not trusted with anything but delivery: everything it
sees is either public (keys, salts, signatures) or encrypted.
"""

import logging
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import websockets
from websockets.exceptions import ConnectionClosed, InvalidStatus

from .types import (
    CLOSE_ABNORMAL,
    CLOSE_NORMAL,
    ConnectionClosedError,
    RelayRejectedError,
)

logger = logging.getLogger(__name__)


def build_relay_url(base_url: str, params: Mapping[str, str]) -> str:
    """
    Append connection parameters to the relay URL.

    Args:
        base_url: Relay websocket endpoint (ws:// or wss://)
        params: Query parameters from ``frames.build_query_params``

    Returns:
        The URL to connect to
    """
    parts = urlsplit(base_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


class RelayConnection(ABC):
    """One peer's connection to the relay."""

    @abstractmethod
    async def send_text(self, message: str) -> None:
        """Send a control frame."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None:
        """Send a binary data frame."""
        ...

    @abstractmethod
    async def recv(self) -> Union[str, bytes]:
        """
        Receive the next frame.

        Raises:
            ConnectionClosedError: When the connection is closed, carrying
                the close code (1006 if none was received)
        """
        ...

    @abstractmethod
    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the connection with the given code."""
        ...

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the connection is closed."""
        ...


def _closed_error(e: ConnectionClosed) -> ConnectionClosedError:
    if e.rcvd is not None:
        return ConnectionClosedError(e.rcvd.code, e.rcvd.reason)
    return ConnectionClosedError(CLOSE_ABNORMAL)


class WebSocketRelayConnection(RelayConnection):
    """
    Relay connection over a websocket.

    Example usage:
        ```python
        conn = await WebSocketRelayConnection.connect(url)
        await conn.send_text("size\\n42")
        frame = await conn.recv()
        await conn.close()
        ```
    """

    def __init__(self, websocket) -> None:
        self._ws = websocket
        self._closed = False

    @classmethod
    async def connect(cls, url: str, open_timeout: Optional[float] = 10.0) -> "WebSocketRelayConnection":
        """
        Open a connection to the relay.

        Raises:
            RelayRejectedError: If the relay answers the upgrade with an error
        """
        logger.debug("Connecting to relay %s", urlsplit(url)._replace(query="").geturl())
        try:
            ws = await websockets.connect(url, open_timeout=open_timeout)
        except InvalidStatus as e:
            raise RelayRejectedError(e.response.status_code) from e
        return cls(ws)

    @property
    def closed(self) -> bool:
        return self._closed

    async def send_text(self, message: str) -> None:
        try:
            await self._ws.send(message)
        except ConnectionClosed as e:
            self._closed = True
            raise _closed_error(e) from e

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._ws.send(data)
        except ConnectionClosed as e:
            self._closed = True
            raise _closed_error(e) from e

    async def recv(self) -> Union[str, bytes]:
        try:
            return await self._ws.recv()
        except ConnectionClosed as e:
            self._closed = True
            raise _closed_error(e) from e

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        self._closed = True
        await self._ws.close(code=code, reason=reason)
