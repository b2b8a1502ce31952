"""Stream layer - sesión SSE, buffer circular y persistencia de intención."""

from .ring_buffer import DEFAULT_CAPACITY, RingBuffer
from .sample import Sample, SamplePayload, parse_frame
from .session_manager import SessionSnapshot, SessionState, StreamingSessionManager

__all__ = [
    "DEFAULT_CAPACITY",
    "RingBuffer",
    "Sample",
    "SamplePayload",
    "parse_frame",
    "SessionSnapshot",
    "SessionState",
    "StreamingSessionManager",
]
