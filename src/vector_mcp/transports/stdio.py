"""
Stdio transport: JSON-RPC over a raw byte stream.

Inbound messages may be framed either way:
- ``Content-Length: N\\r\\n\\r\\n<N bytes of JSON>``
- one JSON document per line

Outbound messages always use the Content-Length framing.
"""

import asyncio
import json
import re
import sys
from typing import Any, BinaryIO, List, Optional

from loguru import logger

from ..rpc.dispatcher import RpcDispatcher

HEADER_PREFIX = b"content-length:"
HEADER_SEPARATOR = b"\r\n\r\n"
READ_CHUNK_SIZE = 65536

_LENGTH_PATTERN = re.compile(rb"content-length:\s*(\d+)", re.IGNORECASE)


def encode_message(message: Any) -> bytes:
    """Serialize a message with a Content-Length header (length in UTF-8 bytes)."""
    body = json.dumps(message, ensure_ascii=False).encode("utf-8")
    return b"Content-Length: " + str(len(body)).encode("ascii") + HEADER_SEPARATOR + body


class MessageFramer:
    """
    Append-only input buffer that yields complete JSON messages.

    Bytes are fed in arbitrary chunks; a message split across chunks is
    returned once its last byte arrives. Bodies that fail to parse are
    dropped and the rest of the buffer is still processed.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet consumed."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> List[Any]:
        """
        Append ``chunk`` and extract every complete message.

        Args:
            chunk: Raw bytes read from the stream

        Returns:
            Decoded JSON messages, in arrival order
        """
        self._buffer.extend(chunk)
        messages: List[Any] = []

        while self._buffer:
            head = bytes(self._buffer[: len(HEADER_PREFIX)]).lower()

            if head == HEADER_PREFIX:
                body = self._take_framed()
                if body is None:
                    break
            elif HEADER_PREFIX.startswith(head):
                # Partial header prefix; cannot tell the framing yet
                break
            else:
                body = self._take_line()
                if body is None:
                    break
                if not body.strip():
                    continue

            message = self._decode(body)
            if message is not None:
                messages.append(message)

        return messages

    def _take_framed(self) -> Optional[bytes]:
        header_end = self._buffer.find(HEADER_SEPARATOR)
        if header_end == -1:
            return None

        match = _LENGTH_PATTERN.match(bytes(self._buffer[:header_end]))
        if match is None:
            logger.warning("Discarding stdio buffer: Content-Length header has no length")
            self._buffer.clear()
            return None

        body_start = header_end + len(HEADER_SEPARATOR)
        body_end = body_start + int(match.group(1))
        if len(self._buffer) < body_end:
            return None

        body = bytes(self._buffer[body_start:body_end])
        del self._buffer[:body_end]
        return body

    def _take_line(self) -> Optional[bytes]:
        newline = self._buffer.find(b"\n")
        if newline == -1:
            return None
        line = bytes(self._buffer[:newline])
        del self._buffer[: newline + 1]
        return line

    @staticmethod
    def _decode(body: bytes) -> Any:
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug(f"Dropping malformed stdio message: {e}")
            return None


class StdioTransport:
    """Drives an RpcDispatcher from a byte stream and writes framed responses."""

    def __init__(self, dispatcher: RpcDispatcher, output: Optional[BinaryIO] = None):
        self.dispatcher = dispatcher
        self.output = output if output is not None else sys.stdout.buffer
        self.framer = MessageFramer()

    async def process(self, chunk: bytes) -> List[Any]:
        """
        Feed one chunk of input and answer every message it completes.

        Returns:
            Responses written for this chunk (notifications produce none)
        """
        responses: List[Any] = []
        for message in self.framer.feed(chunk):
            try:
                response = await self.dispatcher.handle(message)
            except Exception:
                logger.exception("Dispatcher raised while handling a stdio message")
                continue
            if response is None:
                continue
            self._write(response)
            responses.append(response)
        return responses

    def _write(self, response: Any) -> None:
        self.output.write(encode_message(response))
        self.output.flush()

    async def run(self, reader: Optional[asyncio.StreamReader] = None) -> None:
        """
        Read until EOF, processing input as it arrives.

        Args:
            reader: Stream to read from; defaults to process stdin
        """
        if reader is None:
            reader = await self._open_stdin()

        logger.info("Stdio transport ready")
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            await self.process(chunk)

        if self.framer.pending:
            logger.warning(f"Stdin closed with {self.framer.pending} unconsumed bytes")
        logger.info("Stdio transport closed")

    @staticmethod
    async def _open_stdin() -> asyncio.StreamReader:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
        return reader
