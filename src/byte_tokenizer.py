import gzip
import logging
import re
import sys
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional, Tuple

from data_structures import EOF

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 64 * 1024
GZIP_MAGIC = b"\x1f\x8b"
NEWLINE = ord("\n")
CARRIAGE_RETURN = b"\r"

# Same set as C isspace()
WHITESPACE = re.compile(rb"[ \t\n\v\f\r]")


class ByteTokenizer:
    """
    Buffered pull reader over a forward-only byte source.
    Only one buffer of input is ever held in memory; it is refilled on demand.
    """

    def __init__(self, source: BinaryIO, buffer_size: int = DEFAULT_BUFFER_SIZE):
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")
        self.source = source
        self.buffer_size = buffer_size
        self._buffer = b""
        self._pos = 0
        self._exhausted = False

    def _fill(self) -> bool:
        """Refill the buffer once it is consumed. Returns False at end of stream."""
        if self._pos < len(self._buffer):
            return True
        if self._exhausted:
            return False
        chunk = self.source.read(self.buffer_size)
        if not chunk:
            self._exhausted = True
            self._buffer = b""
            self._pos = 0
            return False
        self._buffer = chunk
        self._pos = 0
        return True

    @property
    def at_eof(self) -> bool:
        return not self._fill()

    def next_byte(self) -> int:
        if not self._fill():
            return EOF
        c = self._buffer[self._pos]
        self._pos += 1
        return c

    def next_token(self, stop: Optional[int] = None) -> Tuple[bytes, int]:
        """
        Read bytes up to `stop` (any whitespace when None).
        Returns (token, terminator); the terminator is consumed and is EOF
        when the stream ended first. Line reads drop a trailing carriage return.
        """
        parts = []
        terminator = EOF
        while self._fill():
            buf = self._buffer
            if stop is None:
                match = WHITESPACE.search(buf, self._pos)
                idx = match.start() if match else -1
            else:
                idx = buf.find(bytes((stop,)), self._pos)

            if idx == -1:
                parts.append(buf[self._pos:])
                self._pos = len(buf)
                continue

            parts.append(buf[self._pos:idx])
            terminator = buf[idx]
            self._pos = idx + 1
            break

        token = b"".join(parts)
        if stop == NEWLINE and token.endswith(CARRIAGE_RETURN):
            token = token[:-1]
        return token, terminator

    def skip_line(self) -> int:
        """Discard the rest of the current line. Returns NEWLINE or EOF."""
        while self._fill():
            idx = self._buffer.find(b"\n", self._pos)
            if idx != -1:
                self._pos = idx + 1
                return NEWLINE
            self._pos = len(self._buffer)
        return EOF


@contextmanager
def open_byte_source(path: str) -> Iterator[BinaryIO]:
    """
    Open a plain or gzip-compressed file for binary reading; '-' is standard input.
    Compression is detected from the magic bytes, not the file name.
    Raises OSError when the file cannot be opened.
    """
    if path == "-":
        raw = sys.stdin.buffer
        owned = False
    else:
        raw = open(path, "rb")
        owned = True

    try:
        peek = getattr(raw, "peek", None)
        magic = peek(2)[:2] if peek is not None else b""
        if magic == GZIP_MAGIC:
            logger.debug(f"Detected gzip input: {path}")
            with gzip.GzipFile(fileobj=raw, mode="rb") as stream:
                yield stream
        else:
            yield raw
    finally:
        if owned:
            raw.close()
