"""Wire format for streamed chat replies.

The server writes one `data: <json>\\n\\n` record per frame. Every frame
carries a `type`:

    {"type": "token", "text": "..."}
    {"type": "done", "userMessageId": "...", "aiMessageId": "..."}
    {"type": "error", "message": "..."}

A stream is any number of token frames followed by exactly one `done` or
`error` frame. The decoder reassembles records split across network reads
and skips payloads that are not valid frames.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Annotated, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

log = structlog.get_logger()

DATA_PREFIX = "data: "
_DATA_PREFIX_BYTES = DATA_PREFIX.encode()
ERROR_REPLY_PREFIX = "Sorry, I encountered an error: "


def wrap_error_message(message: str) -> str:
    """User-facing text shown (and persisted) in place of a failed reply."""
    return f"{ERROR_REPLY_PREFIX}{message}"


class TokenFrame(BaseModel):
    type: Literal["token"] = "token"
    text: str


class DoneFrame(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["done"] = "done"
    user_message_id: str = Field(alias="userMessageId")
    ai_message_id: str = Field(alias="aiMessageId")


class ErrorFrame(BaseModel):
    type: Literal["error"] = "error"
    message: str


Frame = Annotated[TokenFrame | DoneFrame | ErrorFrame, Field(discriminator="type")]
_frame_adapter: TypeAdapter[TokenFrame | DoneFrame | ErrorFrame] = TypeAdapter(Frame)


def encode_frame(frame: TokenFrame | DoneFrame | ErrorFrame) -> str:
    """Serialize a frame as one self-delimiting event-stream record."""
    payload = json.dumps(frame.model_dump(by_alias=True), ensure_ascii=False, separators=(",", ":"))
    return f"{DATA_PREFIX}{payload}\n\n"


class FrameDecoder:
    """Incremental client-side parser.

    Feed raw reads (bytes or str) in arrival order; complete frames come back
    in delivery order. Malformed payloads, including records that are not
    valid UTF-8, are dropped and counted in `skipped`.

    Lines are split on the raw newline byte before decoding. That byte never
    occurs inside a multi-byte UTF-8 sequence, so a character split across
    reads is rejoined before it is decoded.
    """

    def __init__(self) -> None:
        self._buffer = b""
        self.skipped = 0

    def feed(self, chunk: bytes | str) -> list[TokenFrame | DoneFrame | ErrorFrame]:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        return self._parse(lines)

    def close(self) -> list[TokenFrame | DoneFrame | ErrorFrame]:
        """Flush a trailing record that was not newline-terminated."""
        tail, self._buffer = self._buffer, b""
        return self._parse([tail])

    def _parse(self, lines: list[bytes]) -> list[TokenFrame | DoneFrame | ErrorFrame]:
        frames: list[TokenFrame | DoneFrame | ErrorFrame] = []
        for raw in lines:
            if not raw.startswith(_DATA_PREFIX_BYTES):
                continue
            try:
                payload = raw.decode("utf-8").rstrip("\r")[len(DATA_PREFIX) :].strip()
            except UnicodeDecodeError:
                self._skip(raw[len(_DATA_PREFIX_BYTES) :].decode("utf-8", errors="replace"))
                continue
            if not payload:
                continue
            try:
                frames.append(_frame_adapter.validate_json(payload))
            except ValidationError:
                self._skip(payload)
        return frames

    def _skip(self, payload: str) -> None:
        self.skipped += 1
        log.debug("chat_frame_skipped", skipped=self.skipped, payload=payload[:200])


def _clock() -> str:
    return time.strftime("%H:%M")


@dataclass
class StreamingTurn:
    """Client-local, never persisted view of the reply being streamed.

    Its id never collides with a persisted turn id. Once the stream ends the
    real turn is fetched from the server and this object is discarded.
    """

    id: str = field(default_factory=lambda: f"stream-{int(time.time() * 1000)}")
    content: str = ""
    timestamp: str = field(default_factory=_clock)
    is_streaming: bool = True
    user_message_id: str | None = None
    ai_message_id: str | None = None
    error: str | None = None

    def apply(self, frame: TokenFrame | DoneFrame | ErrorFrame) -> None:
        if not self.is_streaming:
            return
        if isinstance(frame, TokenFrame):
            self.content += frame.text
        elif isinstance(frame, DoneFrame):
            self.is_streaming = False
            self.user_message_id = frame.user_message_id
            self.ai_message_id = frame.ai_message_id
        else:
            self.is_streaming = False
            self.error = frame.message
            self.content = wrap_error_message(frame.message)
        self.timestamp = _clock()

    @property
    def finished(self) -> bool:
        return not self.is_streaming
