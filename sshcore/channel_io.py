"""Byte-stream readers and writers over a channel's messages."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Optional

from .messages import Close, Data, Eof, ExtendedData

_U32_MAX = 0xFFFFFFFF


async def _deliver(sender: Any, item: Any) -> None:
    """Queue ``item`` on the session sender, reporting a closed sender as a broken pipe."""
    try:
        await sender.put(item)
    except Exception as exc:
        raise BrokenPipeError("channel closed") from exc


class WindowSize:
    """The remaining flow-control window of a channel, shared by its writers."""

    def __init__(self, value: int = 0) -> None:
        self._value = self._checked(value)
        self._changed = asyncio.Event()

    @staticmethod
    def _checked(value: int) -> int:
        if not 0 <= value <= _U32_MAX:
            raise ValueError(f"window size out of range: {value}")
        return value

    def __repr__(self) -> str:
        return f"WindowSize({self._value})"

    def get(self) -> int:
        """The number of bytes that may still be sent."""
        return self._value

    def set(self, value: int) -> None:
        """Replace the window size and wake writers waiting for room."""
        self._value = self._checked(value)
        self._changed.set()

    async def _wait_for_room(self) -> None:
        while self._value == 0:
            self._changed.clear()
            await self._changed.wait()

    def _consume(self, amount: int) -> None:
        self._value -= amount


class ChannelRx:
    """Reads the data (or one kind of extended data) arriving on a channel."""

    def __init__(self, channel: Any, ext: Optional[int] = None, owned: bool = False) -> None:
        self._channel = channel
        self._ext = ext
        self._owned = owned
        self._pending: Optional[tuple[bytes, int]] = None
        self._closed = False

    def _select(self, msg: Any) -> Optional[bytes]:
        if isinstance(msg, Data) and self._ext is None:
            return bytes(msg.data)
        if isinstance(msg, ExtendedData) and self._ext is not None and msg.ext == self._ext:
            return bytes(msg.data)
        return None

    async def read(self, n: int = -1) -> bytes:
        """Return up to ``n`` bytes (a whole message if ``n`` is negative); ``b""`` at end."""
        while True:
            if self._pending is not None:
                data, idx = self._pending
                self._pending = None
            else:
                msg = await self._channel.receiver.recv()
                if msg is None:
                    return b""
                if isinstance(msg, Eof):
                    self._channel.receiver.close()
                    return b""
                selected = self._select(msg)
                if selected is None:
                    continue
                data, idx = selected, 0

            end = len(data) if n < 0 else min(len(data), idx + n)
            if end != len(data):
                self._pending = (data, end)
            return data[idx:end]

    def close(self) -> None:
        """Release the reader; a reader that owns its channel asks for it to be closed."""
        if self._closed:
            return
        self._closed = True
        if self._owned:
            channel = self._channel
            with contextlib.suppress(Exception):
                channel.sender.put_nowait((channel.id, Close()))


class ChannelTx:
    """Writes bytes to a channel as data messages, respecting the window."""

    def __init__(
        self,
        sender: Any,
        channel_id: int,
        window_size: WindowSize,
        max_packet_size: int,
        ext: Optional[int] = None,
    ) -> None:
        self._sender = sender
        self._id = channel_id
        self._window = window_size
        self._max_packet_size = max_packet_size
        self._ext = ext

    async def write(self, data: bytes) -> int:
        """Send as much of ``data`` as one packet allows and return how much was sent."""
        data = bytes(data)
        if not data:
            return 0
        if self._max_packet_size <= 0:
            raise ValueError("maximum packet size must be positive")
        await self._window._wait_for_room()
        writable = min(self._max_packet_size, self._window.get(), len(data))
        self._window._consume(writable)
        chunk = data[:writable]
        msg = Data(chunk) if self._ext is None else ExtendedData(chunk, self._ext)
        await _deliver(self._sender, (self._id, msg))
        return writable

    async def write_all(self, data: bytes) -> None:
        """Send all of ``data``, in as many packets as needed."""
        view = bytes(data)
        offset = 0
        while offset < len(view):
            offset += await self.write(view[offset:])

    async def flush(self) -> None:
        """Nothing is buffered here; yield so the session can pick up queued messages."""
        await asyncio.sleep(0)

    async def shutdown(self) -> None:
        """Tell the peer no more data will be sent."""
        await _deliver(self._sender, (self._id, Eof()))


class ChannelStream:
    """A bidirectional byte stream over a channel."""

    def __init__(self, tx: ChannelTx, rx: ChannelRx) -> None:
        self._tx = tx
        self._rx = rx

    async def read(self, n: int = -1) -> bytes:
        """Return up to ``n`` bytes of channel data; ``b""`` at end."""
        return await self._rx.read(n)

    async def write(self, data: bytes) -> int:
        """Send part of ``data`` and return the number of bytes sent."""
        return await self._tx.write(data)

    async def flush(self) -> None:
        """Flush the writing side."""
        await self._tx.flush()

    async def shutdown(self) -> None:
        """Send end-of-file on the writing side."""
        await self._tx.shutdown()