"""Byte source and sink interfaces for fastshare transfers."""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Optional, Union


class ByteSource(ABC):
    """Where the sender reads plaintext from."""

    @abstractmethod
    async def read(self, max_len: int) -> bytes:
        """Read up to max_len bytes. Returns b"" at end of stream."""
        ...


class ByteSink(ABC):
    """Where the receiver writes plaintext to."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write a decrypted chunk."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Signal that the whole payload has been written."""
        ...

    @abstractmethod
    async def error(self, cause: BaseException) -> None:
        """Signal that the transfer failed; written data must not be used."""
        ...


class BytesSource(ByteSource):
    """Source over an in-memory payload."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._offset = 0

    @property
    def size(self) -> int:
        """Total payload size."""
        return len(self._data)

    async def read(self, max_len: int) -> bytes:
        chunk = self._data[self._offset : self._offset + max_len]
        self._offset += len(chunk)
        return bytes(chunk)


class FileSource(ByteSource):
    """Source over a file opened for binary reading."""

    def __init__(self, file: BinaryIO) -> None:
        self._file = file

    @classmethod
    def size_of(cls, path: Union[str, Path]) -> int:
        """Size of the file at path."""
        return Path(path).stat().st_size

    async def read(self, max_len: int) -> bytes:
        return self._file.read(max_len)


class BufferSink(ByteSink):
    """
    Sink collecting the payload in memory.

    The payload is only available after a successful close; a failed
    transfer discards whatever was written.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._closed = False
        self._error: Optional[BaseException] = None

    @property
    def closed(self) -> bool:
        """Whether the payload completed."""
        return self._closed

    @property
    def failure(self) -> Optional[BaseException]:
        """The error the transfer failed with, if any."""
        return self._error

    @property
    def data(self) -> bytes:
        """
        The received payload.

        Raises:
            RuntimeError: If the transfer has not completed successfully
        """
        if self._error is not None:
            raise RuntimeError("Transfer failed") from self._error
        if not self._closed:
            raise RuntimeError("Transfer not complete")
        return bytes(self._buffer)

    async def write(self, data: bytes) -> None:
        if self._closed or self._error is not None:
            raise RuntimeError("Sink is finished")
        self._buffer += data

    async def close(self) -> None:
        self._closed = True

    async def error(self, cause: BaseException) -> None:
        self._error = cause
        self._buffer = bytearray()


class FileSink(ByteSink):
    """
    Sink writing to a file.

    Data goes to a temporary file beside the destination, which is renamed
    into place on close and removed on error, so a failed transfer never
    leaves a truncated file at the destination path.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._tmp_path = self._path.with_name(f".{self._path.name}.part")
        self._file: Optional[BinaryIO] = None

    @property
    def path(self) -> Path:
        """Destination path."""
        return self._path

    async def write(self, data: bytes) -> None:
        if self._file is None:
            self._file = open(self._tmp_path, "wb")
        self._file.write(data)

    async def close(self) -> None:
        if self._file is None:
            # Empty payload
            self._file = open(self._tmp_path, "wb")
        self._file.close()
        os.replace(self._tmp_path, self._path)

    async def error(self, cause: BaseException) -> None:
        if self._file is not None:
            self._file.close()
        try:
            self._tmp_path.unlink()
        except FileNotFoundError:
            pass
