"""Detection of bore's readiness notice in its output streams.

bore prints a line such as ``listening at bore.pub:54321`` once the server
has assigned a remote port. The notice is free-form log text, may arrive on
stdout or stderr, and is not guaranteed to land in a single read, so each
stream gets its own :class:`OutputScanner` that carries the unterminated
tail of the previous chunk.
"""

import codecs
import re
from typing import NamedTuple

LISTENING_PATTERN = re.compile(r"listening at ([^:]+):(\d+)")

# Longest partial line kept between chunks
MAX_TAIL_LENGTH = 4096

MIN_PORT = 1
MAX_PORT = 65535


class Endpoint(NamedTuple):
    host: str
    port: int


def parse_listening_notice(text: str) -> Endpoint | None:
    """Return the first ``host:port`` announced in ``text``, if any.

    Notices whose port is outside 1-65535 are skipped.
    """
    for match in LISTENING_PATTERN.finditer(text):
        port = int(match.group(2))
        if MIN_PORT <= port <= MAX_PORT:
            return Endpoint(match.group(1), port)
    return None


class OutputScanner:
    """Incrementally scans one output stream for the readiness notice."""

    def __init__(self, name: str):
        self.name = name
        self._tail = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> tuple[list[str], Endpoint | None]:
        """Consume a chunk of raw output.

        Args:
            chunk: Bytes read from the stream

        Returns:
            The complete lines contained in the chunk (for logging) and the
            first endpoint found, or None
        """
        text = self._tail + self._decoder.decode(chunk)
        *lines, self._tail = text.split("\n")

        endpoint = None
        for line in lines:
            endpoint = parse_listening_notice(line)
            if endpoint is not None:
                break

        if endpoint is None:
            endpoint = parse_listening_notice(self._tail)
            if endpoint is not None:
                # Port digits may continue in the next chunk
                if self._tail.endswith(str(endpoint.port)):
                    endpoint = None

        if len(self._tail) > MAX_TAIL_LENGTH:
            self._tail = self._tail[-MAX_TAIL_LENGTH:]

        return [line.rstrip("\r") for line in lines if line.strip()], endpoint

    def flush(self) -> tuple[list[str], Endpoint | None]:
        """Consume whatever is left once the stream reaches EOF."""
        tail = self._tail + self._decoder.decode(b"", final=True)
        self._tail = ""
        lines = [tail.rstrip("\r")] if tail.strip() else []
        return lines, parse_listening_notice(tail)
