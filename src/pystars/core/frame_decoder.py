"""
Frame decoding for the STARS text protocol.

A frame is one line of text terminated by ``\\n``; carriage returns are
discarded. Each line is split into the four message fields:

    <from>><to> <command> <parameters...>

Two decoders are provided:

- FrameDecoder: accumulates decoded text and extracts complete lines. This is
  the canonical decoder.
- LegacyFrameDecoder: byte-level field state machine used by earlier clients.
  Kept for peers that need byte-for-byte field handling.

Both are stateful across reads: a frame (or its terminator) may arrive split
over any number of chunks, and one chunk may complete several frames.
"""

import codecs
import logging
from typing import List

from ..models.message import StarsMessage

logger = logging.getLogger(__name__)

FRAME_TERMINATOR = "\n"
DEFAULT_ENCODING = "utf-8"


def parse_line(line: str) -> StarsMessage:
    """
    Split one frame's text into a StarsMessage.

    Lines without '>' are degenerate: the whole line becomes ``from_``.

    Example:
        >>> parse_line("A>B cmd p1 p2")
        StarsMessage(from_='A', to='B', command='cmd', parameters='p1 p2')
        >>> parse_line("HELLO")
        StarsMessage(from_='HELLO', to='', command='', parameters='')
    """
    line = line.replace("\r", "").replace("\n", "")

    if ">" not in line:
        return StarsMessage(from_=line)

    sender, remainder = line.split(">", 1)
    sender = sender.rstrip()
    remainder = remainder.lstrip()

    if " " not in remainder:
        return StarsMessage(from_=sender, to=remainder)

    to, remainder = remainder.split(" ", 1)
    remainder = remainder.lstrip()

    if " " not in remainder:
        return StarsMessage(from_=sender, to=to, command=remainder)

    command, parameters = remainder.split(" ", 1)
    return StarsMessage(
        from_=sender,
        to=to,
        command=command,
        parameters=parameters.lstrip()
    )


def encode_line(text: str, encoding: str = DEFAULT_ENCODING) -> bytes:
    """
    Encode one outgoing line including its terminator.

    Raises:
        ValueError: If the text contains a line terminator
    """
    if "\n" in text or "\r" in text:
        raise ValueError(f"Outgoing text must be a single line: {text!r}")
    return (text + FRAME_TERMINATOR).encode(encoding)


class FrameDecoder:
    """
    Text-accumulator frame decoder.

    Incoming bytes are decoded incrementally (a multi-byte character split
    across reads is held back until complete) and appended to a text buffer.
    Every complete line in the buffer is removed and parsed.

    Example:
        >>> decoder = FrameDecoder()
        >>> decoder.feed(b"A>B hel")
        []
        >>> decoder.feed(b"lo\\r")
        []
        >>> decoder.feed(b"\\nC>D x\\n")
        [StarsMessage(from_='A', to='B', command='hello', parameters=''),
         StarsMessage(from_='C', to='D', command='x', parameters='')]
    """

    def __init__(self, encoding: str = DEFAULT_ENCODING, errors: str = "replace"):
        """
        Args:
            encoding: Text encoding of the wire (default: utf-8)
            errors: Codec error handler for undecodable bytes
        """
        self.encoding = encoding
        self._errors = errors
        self._decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
        self._buffer = ""
        self.frames_decoded = 0

    @property
    def pending(self) -> str:
        """Text received for the frame currently being assembled."""
        return self._buffer

    @property
    def has_partial_frame(self) -> bool:
        return bool(self._buffer)

    def feed(self, data: bytes) -> List[StarsMessage]:
        """
        Consume one chunk of received bytes.

        Args:
            data: Bytes as returned by one socket read

        Returns:
            Messages completed by this chunk, in arrival order (may be empty)
        """
        if data:
            self._buffer += self._decoder.decode(data)

        messages = []
        while True:
            index = self._buffer.find(FRAME_TERMINATOR)
            if index < 0:
                break
            line = self._buffer[:index]
            self._buffer = self._buffer[index + 1:]
            messages.append(parse_line(line))

        self.frames_decoded += len(messages)
        return messages

    def reset(self) -> None:
        """Discard any partially received frame."""
        if self._buffer:
            logger.debug(f"Discarding partial frame: {self._buffer!r}")
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder(self.encoding)(errors=self._errors)


class LegacyFrameDecoder:
    """
    Byte-level field state machine decoder.

    Bytes are accumulated into one of four fields. The field level advances
    when the byte equal to the current level's delimiter (``>``, space, space)
    is seen; the last level (parameters) collects everything up to ``\\n``.
    Carriage returns are skipped wherever they occur.

    Unlike FrameDecoder this performs no whitespace trimming, so it only
    agrees with parse_line() on frames that use single separators.
    """

    DELIMITER = b">  \n"

    def __init__(self, encoding: str = DEFAULT_ENCODING):
        self.encoding = encoding
        self._fields = [bytearray() for _ in range(4)]
        self._level = 0
        self.frames_decoded = 0

    @property
    def has_partial_frame(self) -> bool:
        return self._level > 0 or any(self._fields)

    def feed(self, data: bytes) -> List[StarsMessage]:
        messages = []
        for byte in data:
            if byte == 0x0D:
                continue
            if byte == 0x0A:
                messages.append(self._complete_frame())
                continue
            if byte == self.DELIMITER[self._level]:
                self._level += 1
                continue
            self._fields[self._level].append(byte)

        self.frames_decoded += len(messages)
        return messages

    def reset(self) -> None:
        for field in self._fields:
            field.clear()
        self._level = 0

    def _complete_frame(self) -> StarsMessage:
        sender, to, command, parameters = (
            bytes(field).decode(self.encoding, errors="replace")
            for field in self._fields
        )
        self.reset()
        return StarsMessage(from_=sender, to=to, command=command, parameters=parameters)
