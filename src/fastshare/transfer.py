"""
Send and receive drivers for fastshare.

A driver owns one relay connection. It feeds inbound control frames to the
role's handshake until the session key is agreed, then streams:

- the sender reads the source in CHUNK_SIZE windows, seals each one and sends
  it as soon as it is sealed, then closes normally after a grace period;
- the receiver queues ciphertext frames as they arrive while a single worker
  opens them in order and writes the plaintext to the sink, closing the sink
  once the declared size has been written.

Any failure closes the connection with the protocol-error code (if it is
still open), marks the session FAILED and propagates. On the receiving side
the sink is told about the failure, so a partial payload is never mistaken
for a complete one.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from .config import TransferConfig
from .frames import build_query_params, decode_text_frame, encode_ack_frame, parse_count
from .handshake import Handshake, ReceiverHandshake, SenderHandshake
from .keys import KeyMaterial
from .models import Session, SessionState
from .queue import ChunkQueue
from .relay import RelayConnection, WebSocketRelayConnection, build_relay_url
from .streams import BufferSink, ByteSink, ByteSource, BytesSource
from .types import (
    CHUNK_SIZE,
    CLOSE_NORMAL,
    CLOSE_PROTOCOL_ERROR,
    CLOSE_RELAY_TIMEOUT,
    ROUTE_ACK,
    ConnectionClosedError,
    FastShareError,
    HandshakeTimeoutError,
    ProtocolViolationError,
    SourceExhaustedError,
    UnexpectedClosureError,
)

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[RelayConnection]]


def _closure_error(e: ConnectionClosedError) -> FastShareError:
    """Translate a transport close into the session error it means."""
    if e.code == CLOSE_RELAY_TIMEOUT:
        return HandshakeTimeoutError("Timed out waiting for peer")
    return UnexpectedClosureError(e.code, e.reason)


async def _cancel_tasks(*tasks: "asyncio.Task") -> None:
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class Transfer(ABC):
    """Common driver logic: pairing, timeouts and failure handling."""

    def __init__(
        self,
        connection: RelayConnection,
        handshake: Handshake,
        config: Optional[TransferConfig] = None,
    ) -> None:
        self._conn = connection
        self._handshake = handshake
        self._config = config or TransferConfig()

    @property
    def session(self) -> Session:
        """The session this driver runs."""
        return self._handshake.session

    @property
    def handshake(self) -> Handshake:
        """The role's handshake state machine."""
        return self._handshake

    async def run(self) -> Session:
        """
        Pair with the peer and transfer the payload.

        Returns:
            The completed session

        Raises:
            FastShareError: On any terminal failure
        """
        try:
            await self._pair_with_timeout()
            await self._transfer()
        except ConnectionClosedError as e:
            error = _closure_error(e)
            logger.warning("%s failed: %s", self.session.role.value.capitalize(), error)
            self._handshake.fail()
            await self._on_failure(error)
            raise error from e
        except BaseException as e:
            logger.warning("%s failed: %s", self.session.role.value.capitalize(), e)
            self._handshake.fail()
            await self._abort()
            await self._on_failure(e)
            raise

        self._handshake.finish()
        logger.info("Transfer complete: %d bytes", self.session.bytes_transferred)
        return self.session

    async def _pair_with_timeout(self) -> None:
        timeout = self._config.handshake_timeout
        if not timeout:
            await self._pair()
            return

        try:
            await asyncio.wait_for(self._pair(), timeout)
        except asyncio.TimeoutError as e:
            raise HandshakeTimeoutError(f"Handshake did not complete within {timeout}s") from e

    async def _pair(self) -> None:
        """Run the handshake until the transfer can start."""
        while self._handshake.state is not SessionState.TRANSFERRING:
            message = await self._conn.recv()
            if not isinstance(message, str):
                # Always raises here: data frames are only valid once transferring
                self._handshake.accept_binary()
                continue

            # Signature checks stretch the share code; keep them off the loop
            replies = await asyncio.to_thread(self._handshake.handle_text, message)
            for reply in replies:
                await self._conn.send_text(reply)

            self._on_handshake_progress()

    def _on_handshake_progress(self) -> None:
        """Called after each handshake frame has been handled."""
        pass

    async def _abort(self) -> None:
        if not self._conn.closed:
            await self._conn.close(CLOSE_PROTOCOL_ERROR)

    async def _on_failure(self, error: BaseException) -> None:
        """Called once with the terminal error."""
        pass

    @abstractmethod
    async def _transfer(self) -> None:
        """Stream the payload once the handshake is complete."""
        ...


class SenderTransfer(Transfer):
    """Drives the sending side of a transfer."""

    def __init__(
        self,
        connection: RelayConnection,
        handshake: SenderHandshake,
        source: ByteSource,
        config: Optional[TransferConfig] = None,
        on_pair_code: Optional[Callable[[str], None]] = None,
    ) -> None:
        super().__init__(connection, handshake, config)
        self._source = source
        self._on_pair_code = on_pair_code
        self._announced = False
        self._acked_chunks = 0

    def _on_handshake_progress(self) -> None:
        display_code = self._handshake.display_code
        if display_code is not None and not self._announced:
            self._announced = True
            if self._on_pair_code is not None:
                self._on_pair_code(display_code)

    async def _transfer(self) -> None:
        cipher = self._handshake.cipher
        session = self.session
        window = self._config.flow_control_window

        while not session.is_complete:
            if window:
                await self._wait_for_credit(cipher.chunks_processed, window)

            chunk = await self._read_window(min(CHUNK_SIZE, session.remaining))
            await self._conn.send_bytes(cipher.encrypt_next(chunk))
            session.bytes_transferred += len(chunk)
            logger.debug("Sent %d/%d bytes", session.bytes_transferred, session.declared_size)

        # Let in-flight frames reach the receiver before closing
        await asyncio.sleep(self._config.close_grace_period)
        await self._conn.close(CLOSE_NORMAL)

    async def _read_window(self, size: int) -> bytes:
        """Read exactly size bytes from the source."""
        window = bytearray()
        while len(window) < size:
            data = await self._source.read(size - len(window))
            if not data:
                raise SourceExhaustedError(
                    f"Source ended after {self.session.bytes_transferred + len(window)} "
                    f"of {self.session.declared_size} bytes"
                )
            window += data
        return bytes(window)

    async def _wait_for_credit(self, sent_chunks: int, window: int) -> None:
        """Block until fewer than window chunks are unacknowledged."""
        while sent_chunks - self._acked_chunks >= window:
            message = await self._conn.recv()
            if not isinstance(message, str):
                raise ProtocolViolationError("Unexpected binary message from receiver")

            frame = decode_text_frame(message)
            if frame.route != ROUTE_ACK:
                raise ProtocolViolationError(f"Unexpected message route: {frame.route}")

            acked = parse_count(frame)
            if acked < self._acked_chunks or acked > sent_chunks:
                raise ProtocolViolationError(f"Invalid ack: {acked}")
            self._acked_chunks = acked


class ReceiverTransfer(Transfer):
    """Drives the receiving side of a transfer."""

    def __init__(
        self,
        connection: RelayConnection,
        handshake: ReceiverHandshake,
        sink: ByteSink,
        config: Optional[TransferConfig] = None,
    ) -> None:
        super().__init__(connection, handshake, config)
        self._sink = sink
        self._queue: Optional[ChunkQueue] = None

    @property
    def queue(self) -> Optional[ChunkQueue]:
        """The ciphertext queue, created once the size is known."""
        return self._queue

    async def _transfer(self) -> None:
        self._queue = ChunkQueue(self._handshake.expected_ciphertext_size)

        worker = asyncio.create_task(self._decrypt_worker())
        reader = asyncio.create_task(self._read_frames())
        try:
            done, _ = await asyncio.wait({worker, reader}, return_when=asyncio.FIRST_COMPLETED)
            if worker not in done:
                error = reader.exception()
                if not self._closed_after_last_frame(error):
                    raise error
                # Sender finished and closed; drain what is queued
                self._queue.close()
                await worker
            worker.result()
        finally:
            await _cancel_tasks(reader, worker)

        await self._sink.close()
        if not self._conn.closed:
            await self._conn.close(CLOSE_NORMAL)

    def _closed_after_last_frame(self, error: BaseException) -> bool:
        return (
            isinstance(error, ConnectionClosedError)
            and error.code == CLOSE_NORMAL
            and self._queue.received_bytes == self._queue.expected_bytes
        )

    async def _read_frames(self) -> None:
        """Queue ciphertext frames until the connection closes."""
        while True:
            message = await self._conn.recv()
            if isinstance(message, str):
                raise ProtocolViolationError("Unexpected text message during transfer")
            self._handshake.accept_binary()
            self._queue.put(message)

    async def _decrypt_worker(self) -> None:
        """Open queued chunks in order and write them to the sink."""
        cipher = self._handshake.cipher
        session = self.session
        ack_interval = self._config.ack_interval if self._config.flow_control_window else 0

        while not session.is_complete:
            chunk = await self._queue.get()
            if chunk is None:
                raise UnexpectedClosureError(CLOSE_NORMAL, "closed before transfer completed")

            plaintext = cipher.decrypt_next(chunk)
            await self._sink.write(plaintext)
            session.bytes_transferred += len(plaintext)
            logger.debug("Received %d/%d bytes", session.bytes_transferred, session.declared_size)

            if ack_interval and not session.is_complete and cipher.chunks_processed % ack_interval == 0:
                try:
                    await self._conn.send_text(encode_ack_frame(cipher.chunks_processed))
                except ConnectionClosedError:
                    # The reader reports the closure; keep draining the queue
                    ack_interval = 0

        self._queue.close()

    async def _on_failure(self, error: BaseException) -> None:
        await self._sink.error(error)


async def send(
    share_code: str,
    source: ByteSource,
    size: int,
    config: Optional[TransferConfig] = None,
    *,
    key_material: Optional[KeyMaterial] = None,
    on_pair_code: Optional[Callable[[str], None]] = None,
    connect: Optional[Connector] = None,
) -> Session:
    """
    Send a payload to whoever pairs with the share code.

    Args:
        share_code: The share code (the relay appends the pair code)
        source: Plaintext source holding at least size bytes
        size: Payload size in bytes
        config: Transfer configuration
        key_material: Key material to use instead of a fresh one
        on_pair_code: Called with the full code to give the receiver
        connect: Relay connector (defaults to a websocket connection)

    Returns:
        The completed session
    """
    config = config or TransferConfig()
    config.validate()
    connect = connect or WebSocketRelayConnection.connect

    handshake = await asyncio.to_thread(SenderHandshake, share_code, size, key_material)
    url = build_relay_url(config.relay_url, build_query_params(handshake.own_info))
    connection = await connect(url)

    transfer = SenderTransfer(connection, handshake, source, config, on_pair_code)
    return await transfer.run()


async def receive(
    share_pair_code: str,
    sink: ByteSink,
    config: Optional[TransferConfig] = None,
    *,
    key_material: Optional[KeyMaterial] = None,
    connect: Optional[Connector] = None,
) -> Session:
    """
    Receive a payload from the sender that was given the share code.

    Args:
        share_pair_code: Share code with the pair code appended
        sink: Where the plaintext goes
        config: Transfer configuration
        key_material: Key material to use instead of a fresh one
        connect: Relay connector (defaults to a websocket connection)

    Returns:
        The completed session

    Raises:
        InvalidPairCodeError: If the code is too short; no connection is made
    """
    config = config or TransferConfig()
    config.validate()
    connect = connect or WebSocketRelayConnection.connect

    try:
        handshake = await asyncio.to_thread(ReceiverHandshake, share_pair_code, key_material)
        params = build_query_params(handshake.own_info, pair_code=handshake.pair_code)
        connection = await connect(build_relay_url(config.relay_url, params))
    except Exception as e:
        await sink.error(e)
        raise

    transfer = ReceiverTransfer(connection, handshake, sink, config)
    return await transfer.run()


async def send_bytes(
    share_code: str,
    data: bytes,
    config: Optional[TransferConfig] = None,
    **kwargs,
) -> Session:
    """Send an in-memory payload. See ``send``."""
    return await send(share_code, BytesSource(data), len(data), config, **kwargs)


async def receive_bytes(
    share_pair_code: str,
    config: Optional[TransferConfig] = None,
    **kwargs,
) -> bytes:
    """Receive a payload into memory. See ``receive``."""
    sink = BufferSink()
    await receive(share_pair_code, sink, config, **kwargs)
    return sink.data
