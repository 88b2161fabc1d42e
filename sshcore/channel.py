"""Session channels: the handle an application uses to talk over one channel."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Iterable, Optional, Union

from .channel_io import ChannelRx, ChannelStream, ChannelTx, WindowSize, _deliver
from .messages import (
    AgentForward,
    ChannelMsg,
    Close,
    Eof,
    Exec,
    RequestPty,
    RequestShell,
    RequestSubsystem,
    RequestX11,
    SetEnv,
    Signal,
    WindowChange,
)

_COPY_CHUNK = 64 * 1024


class _Inbox:
    """An unbounded message queue that can be closed from either end."""

    def __init__(self) -> None:
        self._items: deque[Any] = deque()
        self._closed = False
        self._event = asyncio.Event()

    def push(self, msg: Any) -> None:
        if self._closed:
            raise BrokenPipeError("channel receiver closed")
        self._items.append(msg)
        self._event.set()

    def close(self) -> None:
        self._closed = True
        self._event.set()

    async def recv(self) -> Optional[Any]:
        while True:
            if self._items:
                return self._items.popleft()
            if self._closed:
                return None
            self._event.clear()
            await self._event.wait()


class ChannelRef:
    """The session's handle on a channel: delivers messages and adjusts its window."""

    def __init__(self, receiver: Optional[_Inbox] = None, window_size: Optional[WindowSize] = None):
        self._inbox = receiver if receiver is not None else _Inbox()
        self.window_size = window_size if window_size is not None else WindowSize()

    def send(self, msg: ChannelMsg) -> None:
        """Deliver ``msg`` to the channel; raise BrokenPipeError if it stopped receiving."""
        self._inbox.push(msg)

    def close(self) -> None:
        """Stop delivering; the channel's pending ``wait`` calls then return None."""
        self._inbox.close()


class Channel:
    """A handle to a session channel, usable without borrowing the session."""

    def __init__(
        self,
        channel_id: int,
        sender: Any,
        receiver: _Inbox,
        max_packet_size: int,
        window_size: WindowSize,
    ) -> None:
        self.id = channel_id
        self.sender = sender
        self.receiver = receiver
        self.max_packet_size = max_packet_size
        self.window_size = window_size

    def __repr__(self) -> str:
        return f"Channel(id={self.id!r})"

    @classmethod
    def create(
        cls, channel_id: int, sender: Any, max_packet_size: int, window_size: int
    ) -> tuple[Channel, ChannelRef]:
        """Build a channel and the session-side reference that feeds it."""
        inbox = _Inbox()
        window = WindowSize(window_size)
        return cls(channel_id, sender, inbox, max_packet_size, window), ChannelRef(inbox, window)

    def writable_packet_size(self) -> int:
        """The smaller of the maximum packet size and the remaining window."""
        return min(self.max_packet_size, self.window_size.get())

    async def _send_msg(self, msg: ChannelMsg) -> None:
        await _deliver(self.sender, (self.id, msg))

    async def request_pty(
        self,
        want_reply: bool,
        term: str,
        col_width: int,
        row_height: int,
        pix_width: int,
        pix_height: int,
        terminal_modes: Iterable[tuple[Any, int]] = (),
    ) -> None:
        """Request a pseudo-terminal with the given characteristics."""
        await self._send_msg(
            RequestPty(
                want_reply,
                term,
                col_width,
                row_height,
                pix_width,
                pix_height,
                tuple(terminal_modes),
            )
        )

    async def request_shell(self, want_reply: bool) -> None:
        """Request a remote shell."""
        await self._send_msg(RequestShell(want_reply))

    async def exec(self, want_reply: bool, command: Union[str, bytes]) -> None:
        """Run a remote command, which the server passes to a shell."""
        raw = command.encode("utf-8") if isinstance(command, str) else bytes(command)
        await self._send_msg(Exec(want_reply, raw))

    async def signal(self, signal: Any) -> None:
        """Signal the remote process."""
        await self._send_msg(Signal(signal))

    async def request_subsystem(self, want_reply: bool, name: str) -> None:
        """Request the start of the named subsystem."""
        await self._send_msg(RequestSubsystem(want_reply, str(name)))

    async def request_x11(
        self,
        want_reply: bool,
        single_connection: bool,
        x11_authentication_protocol: str,
        x11_authentication_cookie: str,
        x11_screen_number: int,
    ) -> None:
        """Request X11 forwarding through an opened X11 channel."""
        await self._send_msg(
            RequestX11(
                want_reply,
                single_connection,
                str(x11_authentication_protocol),
                str(x11_authentication_cookie),
                x11_screen_number,
            )
        )

    async def set_env(self, want_reply: bool, variable_name: str, variable_value: str) -> None:
        """Set a remote environment variable."""
        await self._send_msg(SetEnv(want_reply, str(variable_name), str(variable_value)))

    async def window_change(
        self, col_width: int, row_height: int, pix_width: int, pix_height: int
    ) -> None:
        """Tell the server that the terminal window changed size."""
        await self._send_msg(WindowChange(col_width, row_height, pix_width, pix_height))

    async def agent_forward(self, want_reply: bool) -> None:
        """Tell the server that agent forwarding channels will be accepted."""
        await self._send_msg(AgentForward(want_reply))

    async def _send_data(self, ext: Optional[int], data: Any) -> None:
        writer = self.make_writer_ext(ext)
        if isinstance(data, (bytes, bytearray, memoryview)):
            await writer.write_all(bytes(data))
            return
        while True:
            chunk = await data.read(_COPY_CHUNK)
            if not chunk:
                return
            await writer.write_all(chunk)

    async def data(self, data: Any) -> None:
        """Send bytes, or everything read from an async reader, as channel data."""
        await self._send_data(None, data)

    async def extended_data(self, ext: int, data: Any) -> None:
        """Send bytes, or everything read from an async reader, as extended data."""
        await self._send_data(ext, data)

    async def eof(self) -> None:
        """Tell the peer no more data will be sent."""
        await self._send_msg(Eof())

    async def close(self) -> None:
        """Request that the channel be closed."""
        await self._send_msg(Close())

    async def wait(self) -> Optional[ChannelMsg]:
        """Return the next incoming message, or None once the channel is closed."""
        return await self.receiver.recv()

    def into_stream(self) -> ChannelStream:
        """Turn the channel into a bidirectional stream of its data."""
        tx = ChannelTx(self.sender, self.id, self.window_size, self.max_packet_size, None)
        return ChannelStream(tx, ChannelRx(self, None, owned=True))

    def make_reader(self) -> ChannelRx:
        """A reader of the channel's data."""
        return self.make_reader_ext(None)

    def make_reader_ext(self, ext: Optional[int]) -> ChannelRx:
        """A reader of the channel's data, or of extended data of type ``ext``."""
        return ChannelRx(self, ext)

    def make_writer(self) -> ChannelTx:
        """A writer sending channel data."""
        return self.make_writer_ext(None)

    def make_writer_ext(self, ext: Optional[int]) -> ChannelTx:
        """A writer sending channel data, or extended data of type ``ext``."""
        return ChannelTx(self.sender, self.id, self.window_size, self.max_packet_size, ext)