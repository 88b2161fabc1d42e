"""Messages exchanged between a channel and its session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Open:
    """The channel was opened."""

    id: int
    max_packet_size: int
    window_size: int


@dataclass(frozen=True)
class Data:
    """Channel data."""

    data: bytes


@dataclass(frozen=True)
class ExtendedData:
    """Extended channel data, such as standard error."""

    data: bytes
    ext: int


@dataclass(frozen=True)
class Eof:
    """The sender will send no more data."""


@dataclass(frozen=True)
class Close:
    """The channel is closed."""


@dataclass(frozen=True)
class RequestPty:
    """Request a pseudo-terminal (client only)."""

    want_reply: bool
    term: str
    col_width: int
    row_height: int
    pix_width: int
    pix_height: int
    terminal_modes: tuple[tuple[Any, int], ...] = ()


@dataclass(frozen=True)
class RequestShell:
    """Request a remote shell (client only)."""

    want_reply: bool


@dataclass(frozen=True)
class Exec:
    """Run a remote command (client only)."""

    want_reply: bool
    command: bytes


@dataclass(frozen=True)
class Signal:
    """Signal the remote process (client only)."""

    signal: Any


@dataclass(frozen=True)
class RequestSubsystem:
    """Start a named subsystem (client only)."""

    want_reply: bool
    name: str


@dataclass(frozen=True)
class RequestX11:
    """Request X11 forwarding (client only)."""

    want_reply: bool
    single_connection: bool
    x11_authentication_protocol: str
    x11_authentication_cookie: str
    x11_screen_number: int


@dataclass(frozen=True)
class SetEnv:
    """Set a remote environment variable (client only)."""

    want_reply: bool
    variable_name: str
    variable_value: str


@dataclass(frozen=True)
class WindowChange:
    """The terminal window changed size (client only)."""

    col_width: int
    row_height: int
    pix_width: int
    pix_height: int


@dataclass(frozen=True)
class AgentForward:
    """Accept agent forwarding channels (client only)."""

    want_reply: bool


@dataclass(frozen=True)
class XonXoff:
    """Whether the client may do flow control (server only)."""

    client_can_do: bool


@dataclass(frozen=True)
class ExitStatus:
    """The remote command exited (server only)."""

    exit_status: int


@dataclass(frozen=True)
class ExitSignal:
    """The remote command was killed by a signal (server only)."""

    signal_name: Any
    core_dumped: bool
    error_message: str
    lang_tag: str


@dataclass(frozen=True)
class WindowAdjusted:
    """The peer enlarged the window (server only)."""

    new_size: int


@dataclass(frozen=True)
class Success:
    """A request succeeded (server only)."""


@dataclass(frozen=True)
class Failure:
    """A request failed (server only)."""


@dataclass(frozen=True)
class OpenFailure:
    """The channel could not be opened."""

    reason: Any


ChannelMsg = Union[
    Open,
    Data,
    ExtendedData,
    Eof,
    Close,
    RequestPty,
    RequestShell,
    Exec,
    Signal,
    RequestSubsystem,
    RequestX11,
    SetEnv,
    WindowChange,
    AgentForward,
    XonXoff,
    ExitStatus,
    ExitSignal,
    WindowAdjusted,
    Success,
    Failure,
    OpenFailure,
]