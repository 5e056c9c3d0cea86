"""Frame builder and byte-driven frame parser for the serial link.

Frame layout::

    +------+--------+---------+------------------+------+
    | STX  | Source | Command |     Payload      | ETX  |
    | 0x02 | 1 byte | 1 byte  | 0, 1, 2 or 6 B   | 0x03 |
    +------+--------+---------+------------------+------+

- Source: sender tag, 0x08 for the host and 0x07 for the controller board
- Payload: command-specific, multi-byte fields are big-endian
- There is no length field, no escaping and no checksum

Because nothing is escaped, an STX byte inside a payload restarts the frame
and an ETX byte inside a payload ends it early. The parser keeps that
behaviour so it stays wire-compatible with the firmware.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

STX = 0x02
ETX = 0x03
HOST_ID = 0x08
DEVICE_ID = 0x07
MIN_FRAME_SIZE = 4  # STX + source + command + ETX
MAX_FRAME_SIZE = 128


@dataclass(frozen=True)
class Frame:
    """A complete STX...ETX protocol frame."""

    command: int
    payload: bytes = b""
    source: int = HOST_ID

    def to_bytes(self) -> bytes:
        return bytes([STX, self.source, self.command]) + self.payload + bytes([ETX])

    @classmethod
    def from_bytes(cls, data: bytes) -> Frame:
        """Build a Frame from raw bytes, which must pass :func:`is_valid_frame`."""
        if not is_valid_frame(data):
            raise ValueError(f"Not a valid frame: {bytes_to_hex(data)}")
        return cls(command=data[2], payload=bytes(data[3:-1]), source=data[1])

    def __len__(self) -> int:
        return len(self.payload) + MIN_FRAME_SIZE

    def __repr__(self) -> str:
        return (
            f"Frame(source=0x{self.source:02X}, command=0x{self.command:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def build_frame(command: int, payload: bytes = b"") -> bytes:
    """Build an outbound frame tagged with the host id.

    Args:
        command: Single-byte command id.
        payload: Command-specific payload bytes.

    Returns:
        The frame bytes, ready for a single write to the port.
    """
    return Frame(command=command, payload=bytes(payload)).to_bytes()


def is_valid_frame(data: bytes) -> bool:
    """Check the delimiters and minimum length of a raw frame."""
    if len(data) < MIN_FRAME_SIZE:
        return False
    return data[0] == STX and data[-1] == ETX


def bytes_to_hex(data: bytes) -> str:
    """Format bytes as ``0x02 0x08 ...`` for log output."""
    return " ".join(f"0x{b:02X}" for b in data)


class ParserState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


class FrameParser:
    """Accumulates inbound bytes into frames, one byte at a time.

    The parser only knows about delimiters. A frame is emitted when ETX
    arrives and the buffer holds a syntactically valid frame; anything else
    is dropped silently and the parser waits for the next STX.

    Usage::

        parser = FrameParser()
        for byte in chunk:
            frame = parser.feed(byte)
            if frame is not None:
                handle(frame)
    """

    def __init__(self, capacity: int = MAX_FRAME_SIZE) -> None:
        self._capacity = capacity
        self._buffer = bytearray()
        self._state = ParserState.IDLE

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def pending(self) -> int:
        """Number of bytes held for the frame in progress."""
        return len(self._buffer)

    def reset(self) -> None:
        self._buffer.clear()
        self._state = ParserState.IDLE

    def feed(self, byte: int) -> Frame | None:
        """Consume one byte and return a Frame if it completed one."""
        if byte == STX:
            self._buffer.clear()
            self._buffer.append(byte)
            self._state = ParserState.ACCUMULATING
            return None

        if self._state is ParserState.IDLE:
            return None

        # Overflowing bytes are dropped, the ETX check below still runs
        if len(self._buffer) < self._capacity:
            self._buffer.append(byte)

        if byte != ETX:
            return None

        raw = bytes(self._buffer)
        self.reset()
        if not is_valid_frame(raw):
            return None
        return Frame.from_bytes(raw)

    def feed_bytes(self, data: bytes) -> list[Frame]:
        """Consume a chunk of bytes in order and return every frame completed."""
        frames: list[Frame] = []
        for byte in data:
            frame = self.feed(byte)
            if frame is not None:
                frames.append(frame)
        return frames
