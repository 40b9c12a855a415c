"""Incremental server-sent-event line decoding.

Bytes are decoded as UTF-8 across read boundaries, split on newlines, and
the trailing incomplete line is carried over to the next read. Only
``data:`` lines are surfaced; comments, event names and blank separators
are ignored.
"""

import codecs
from collections.abc import AsyncIterable, AsyncIterator

DATA_PREFIX = "data:"


def _data_payload(line: str) -> str | None:
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    # A single leading space after the colon is part of the framing
    return payload[1:] if payload.startswith(" ") else payload


async def iter_sse_data(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield the payload of every ``data:`` line in arrival order.

    Args:
        byte_stream: Raw response body chunks, split at arbitrary points.

    Yields:
        The text following ``data:`` on each complete line, plus the final
        unterminated line once the stream ends.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    async for raw in byte_stream:
        buffer += decoder.decode(raw)
        *lines, buffer = buffer.split("\n")
        for line in lines:
            payload = _data_payload(line)
            if payload is not None:
                yield payload

    buffer += decoder.decode(b"", final=True)
    for line in buffer.split("\n"):
        payload = _data_payload(line)
        if payload is not None:
            yield payload
