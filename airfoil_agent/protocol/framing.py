"""
Message framing for the Airfoil agent protocol.

Airfoil sends length-prefixed text messages back-to-back on one stream:

    <length>;<body>

where <length> is one or more ASCII decimal digits giving the UTF-8 byte
count of <body>. The stream arrives in arbitrary chunks, so a framer is
fed one decoded character at a time and reports each completed body.

The length counts bytes, not characters: a body of "é" is declared as 2.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn

from airfoil_agent.exceptions import BodyOverrunError, MalformedLengthError, MessageTooLargeError

LENGTH_DELIMITER = ";"

# Default upper bound on a declared body length
DEFAULT_MAX_MESSAGE_BYTES = 1024 * 1024

# A length prefix longer than this is rejected before the delimiter arrives
MAX_LENGTH_DIGITS = 20

_DIGITS = frozenset("0123456789")


@dataclass(frozen=True, slots=True)
class AwaitingLength:
    """Reading the decimal length prefix."""

    digits: str = ""


@dataclass(frozen=True, slots=True)
class AwaitingBody:
    """Reading a body of `length` bytes, `received` of which have arrived."""

    length: int
    received: int = 0


FramerState = AwaitingLength | AwaitingBody


class MessageFramer:
    """
    Per-connection state machine turning characters into messages.

    A framer belongs to exactly one connection and must not be fed from
    two deliveries at once.

    Example:
        framer = MessageFramer()
        for ch in "2;OK0;":
            message = framer.feed(ch)  # "OK" on the K, "" on the last ';'
    """

    def __init__(self, max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES) -> None:
        if max_message_bytes < 0:
            raise ValueError(f"max_message_bytes must be non-negative, got {max_message_bytes}")
        self.max_message_bytes = max_message_bytes

        self._digits: list[str] = []
        self._length: int | None = None
        self._body = bytearray()

    @property
    def state(self) -> FramerState:
        """Snapshot of the current framer state."""
        if self._length is None:
            return AwaitingLength("".join(self._digits))
        return AwaitingBody(self._length, len(self._body))

    @property
    def is_idle(self) -> bool:
        """True when no partial message is buffered."""
        return self._length is None and not self._digits

    def feed(self, char: str) -> str | None:
        """
        Consume one character.

        Returns:
            The completed message body, or None if the message is not
            complete yet.

        Raises:
            MalformedLengthError: The length prefix is not a decimal integer.
            MessageTooLargeError: The declared length exceeds the limit.
            BodyOverrunError: A multi-byte character crossed the declared length.
        """
        if self._length is None:
            if char != LENGTH_DELIMITER:
                self._digits.append(char)
                if len(self._digits) > MAX_LENGTH_DIGITS:
                    self._fail(MalformedLengthError("".join(self._digits)))
                return None

            self._length = self._parse_length()
            # A zero-length body is complete as soon as the delimiter is read.
            return self._take_if_complete()

        self._body += char.encode("utf-8")
        if len(self._body) > self._length:
            self._fail(BodyOverrunError(self._length, len(self._body)))
        return self._take_if_complete()

    def feed_text(self, text: str) -> list[str]:
        """Feed every character of `text`, returning the messages completed."""
        messages = []
        for char in text:
            message = self.feed(char)
            if message is not None:
                messages.append(message)
        return messages

    def reset(self) -> None:
        """
        Return to reading a length prefix, discarding any partial message.

        Only safe when the connection is being torn down: the stream cannot
        realign on a message boundary afterwards.
        """
        self._digits.clear()
        self._length = None
        self._body.clear()

    def _parse_length(self) -> int:
        prefix = "".join(self._digits)
        self._digits.clear()

        if not prefix or not _DIGITS.issuperset(prefix):
            self._fail(MalformedLengthError(prefix))

        length = int(prefix)
        if length > self.max_message_bytes:
            self._fail(MessageTooLargeError(length, self.max_message_bytes))
        return length

    def _take_if_complete(self) -> str | None:
        if len(self._body) != self._length:
            return None

        message = self._body.decode("utf-8")
        self.reset()
        return message

    def _fail(self, error: Exception) -> NoReturn:
        self.reset()
        raise error
