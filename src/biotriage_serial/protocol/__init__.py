"""Protocol layer: framing, command encoding, and response parsing."""

from .framing import Frame, FrameParser, build_frame
from .commands import Command, ResponseId, encode
from .parser import parse_response
