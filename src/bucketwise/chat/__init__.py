"""AI chat pipeline: node authorization, context, backends and streaming."""

from bucketwise.chat.context import HISTORY_LIMIT, assemble_context
from bucketwise.chat.extraction import extract_turn
from bucketwise.chat.frames import (
    DoneFrame,
    ErrorFrame,
    FrameDecoder,
    StreamingTurn,
    TokenFrame,
    encode_frame,
)
from bucketwise.chat.ownership import authorize_node, authorize_turn, resolve_tenant
from bucketwise.chat.session import ChatMetrics, ChatStreamSession, DetachedWorkers, SessionState

__all__ = [
    "HISTORY_LIMIT",
    "ChatMetrics",
    "ChatStreamSession",
    "DetachedWorkers",
    "DoneFrame",
    "ErrorFrame",
    "FrameDecoder",
    "SessionState",
    "StreamingTurn",
    "TokenFrame",
    "assemble_context",
    "authorize_node",
    "authorize_turn",
    "encode_frame",
    "extract_turn",
    "resolve_tenant",
]
