# Server-Sent-Events relay for streamed chat completions.
# Upstream bytes arrive in arbitrary pieces (a read can end mid-line or even
# mid-character); we reassemble whole lines and re-frame each event, emitting
# as soon as a line is complete.

from __future__ import annotations
import codecs
import json
from typing import AsyncIterable, AsyncIterator, List, Optional

DONE_SENTINEL = "[DONE]"
DONE_EVENT = b"data: [DONE]\n\n"


class LineAssembler:
    """Turns byte chunks split at arbitrary offsets into complete text lines."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        rest = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return [rest.rstrip("\r")] if rest else []


def format_data_event(data: str) -> bytes:
    """Frame one `data:` payload; JSON is re-serialised compactly, anything else goes out verbatim."""
    try:
        payload = json.dumps(json.loads(data), separators=(",", ":"), ensure_ascii=False)
    except ValueError:
        payload = data
    return f"data: {payload}\n\n".encode("utf-8")


def frame_line(raw: str) -> Optional[bytes]:
    line = raw.strip()
    # blank separators and ":" comments (keep-alives) are dropped
    if not line or line.startswith(":"):
        return None
    if line.startswith("data:"):
        data = line[len("data:"):].strip()
        if data == DONE_SENTINEL:
            return DONE_EVENT
        return format_data_event(data)
    # event:/id:/retry: fields attach to the next data event
    return f"{line}\n".encode("utf-8")


async def relay_sse(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    lines = LineAssembler()
    async for chunk in chunks:
        for raw in lines.feed(chunk):
            event = frame_line(raw)
            if event is None:
                continue
            yield event
            if event == DONE_EVENT:
                return
    for raw in lines.flush():
        event = frame_line(raw)
        if event is not None:
            yield event
