"""Incremental decoding of newline-delimited JSON generation streams."""

import json
from typing import Callable, Iterable

from proof_sdk.logger import logger
from proof_sdk.schemas import GenerationChunk, StreamEvent

StreamListener = Callable[[StreamEvent], None]


class LineDecoder:
    """Split arbitrarily fragmented bytes into complete newline-terminated lines.

    Bytes that do not yet contain a newline stay buffered until a later
    `feed` completes them, so the lines produced never depend on where the
    transport happened to cut the stream.
    """

    def __init__(self):
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)

    def feed(self, data: bytes) -> list[bytes]:
        """Append a fragment and return every line it completes, newline included."""
        self._buffer.extend(data)

        lines = []
        while (pos := self._buffer.find(b"\n")) != -1:
            lines.append(bytes(self._buffer[: pos + 1]))
            del self._buffer[: pos + 1]
        return lines

    def flush(self) -> list[bytes]:
        """Return the unterminated tail, if any, and reset the buffer."""
        if not self._buffer:
            return []
        tail = bytes(self._buffer)
        self._buffer.clear()
        return [tail]


def parse_chunk(line: bytes) -> GenerationChunk | None:
    """Decode one stream line.

    Returns None for blank lines, malformed JSON and JSON that is not an object.
    """
    text = line.decode("utf-8", errors="replace").strip()
    if not text:
        return None

    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        logger.debug(f"Discarding malformed stream line: {text!r}")
        return None

    if not isinstance(value, dict):
        logger.debug(f"Discarding non-object stream line: {text!r}")
        return None

    response = value.get("response")
    return GenerationChunk(
        response_fragment=response if isinstance(response, str) else None,
        done=value.get("done") is True,
    )


class StreamRelay:
    """Turn raw body fragments into token/done events for a listener.

    The relay stops once it has emitted `done`: anything the server sends after
    the final chunk is ignored, and `feed` tells the caller to stop reading.
    """

    def __init__(self, listener: StreamListener):
        self.listener = listener
        self.decoder = LineDecoder()
        self.done = False

    def feed(self, data: bytes) -> bool:
        """Process one fragment. Returns True once the stream is complete."""
        return self._process(self.decoder.feed(data))

    def finish(self) -> bool:
        """Process a trailing line the server did not terminate with a newline."""
        return self._process(self.decoder.flush())

    def _process(self, lines: list[bytes]) -> bool:
        for line in lines:
            if self.done:
                break
            chunk = parse_chunk(line)
            if chunk is None:
                continue
            if chunk.done:
                self.done = True
                self.listener(StreamEvent(kind="done"))
            elif chunk.response_fragment is not None:
                self.listener(StreamEvent(kind="token", token=chunk.response_fragment))
        return self.done


def relay_fragments(fragments: Iterable[bytes], listener: StreamListener) -> bool:
    """Relay an iterable of body fragments to `listener`.

    Returns:
        True if the stream carried a `done` chunk.
    """
    relay = StreamRelay(listener)
    for data in fragments:
        if relay.feed(data):
            return True
    return relay.finish()
