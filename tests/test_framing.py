"""
Tests for the length-prefixed message framer.

These tests verify message reassembly from single characters, back-to-back
messages, the zero-length body, multi-byte bodies, and the protocol errors
raised for malformed streams.
"""

import pytest

from airfoil_agent.exceptions import (
    BodyOverrunError,
    MalformedLengthError,
    MessageTooLargeError,
    ProtocolError,
)
from airfoil_agent.protocol.framing import (
    MAX_LENGTH_DIGITS,
    AwaitingBody,
    AwaitingLength,
    MessageFramer,
)
from tests.helpers import frame


@pytest.fixture
def framer() -> MessageFramer:
    return MessageFramer()


def feed_all(framer: MessageFramer, text: str) -> list[str]:
    """Feed one character at a time, collecting completed messages."""
    messages = []
    for char in text:
        message = framer.feed(char)
        if message is not None:
            messages.append(message)
    return messages


# -----------------------------------------------------------------------------
# Message Reassembly
# -----------------------------------------------------------------------------


class TestMessageReassembly:
    """Tests for turning characters into messages."""

    @pytest.mark.parametrize(
        "body",
        [
            "supportsRemoteControl",
            "a",
            "with spaces and ; semicolons",
            "Björk – Jóga",
            "日本語のタイトル",
            "emoji 🎵 inside",
        ],
    )
    def test_single_message(self, framer: MessageFramer, body: str) -> None:
        """A framed body comes back out exactly once, on its last character."""
        wire = frame(body)
        results = [framer.feed(char) for char in wire]

        assert results[-1] == body
        assert all(result is None for result in results[:-1])
        assert framer.state == AwaitingLength("")
        assert framer.is_idle

    def test_back_to_back_messages(self, framer: MessageFramer) -> None:
        """Concatenated messages come out in order with nothing left over."""
        wire = frame("requestTrackTitle") + frame("requestTrackArtist")

        assert feed_all(framer, wire) == ["requestTrackTitle", "requestTrackArtist"]
        assert framer.is_idle

    def test_partial_message_keeps_state(self, framer: MessageFramer) -> None:
        """A partial body leaves the framer waiting for the rest."""
        assert feed_all(framer, "5;OK") == []
        assert framer.state == AwaitingBody(length=5, received=2)

        assert feed_all(framer, "!!!") == ["OK!!!"]

    def test_partial_length_prefix(self, framer: MessageFramer) -> None:
        """Digits are accumulated until the delimiter."""
        feed_all(framer, "12")

        assert framer.state == AwaitingLength("12")
        assert not framer.is_idle

    def test_length_counts_bytes_not_characters(self, framer: MessageFramer) -> None:
        """A two-character body of multi-byte characters needs its byte count."""
        # "éé" is 2 characters but 4 UTF-8 bytes
        assert feed_all(framer, "4;éé") == ["éé"]

    def test_leading_zeros_are_accepted(self, framer: MessageFramer) -> None:
        assert feed_all(framer, "002;OK") == ["OK"]

    def test_feed_text(self, framer: MessageFramer) -> None:
        """feed_text feeds every character and collects completed messages."""
        assert framer.feed_text(frame("one") + frame("two") + "3;th") == ["one", "two"]
        assert framer.feed_text("ree") == ["three"]


# -----------------------------------------------------------------------------
# Zero-Length Messages
# -----------------------------------------------------------------------------


class TestZeroLengthMessage:
    """Tests for the empty body (declared length 0)."""

    def test_completes_on_delimiter(self, framer: MessageFramer) -> None:
        """'0;' completes an empty message on the delimiter itself."""
        assert framer.feed("0") is None
        assert framer.feed(";") == ""
        assert framer.is_idle

    def test_does_not_swallow_next_message(self, framer: MessageFramer) -> None:
        """The character after '0;' starts the next length prefix."""
        assert feed_all(framer, "0;2;OK") == ["", "OK"]

    def test_consecutive_empty_messages(self, framer: MessageFramer) -> None:
        assert feed_all(framer, "0;0;0;") == ["", "", ""]


# -----------------------------------------------------------------------------
# Protocol Errors
# -----------------------------------------------------------------------------


class TestFramingErrors:
    """Tests for malformed streams."""

    @pytest.mark.parametrize("prefix", ["abc", "1a", "-1", " 5", "+5", "1.5", "٣"])
    def test_non_digit_length(self, framer: MessageFramer, prefix: str) -> None:
        """A length prefix with non-digit characters is rejected."""
        with pytest.raises(MalformedLengthError) as exc_info:
            feed_all(framer, prefix + ";")

        assert exc_info.value.prefix == prefix
        assert framer.is_idle

    def test_empty_length(self, framer: MessageFramer) -> None:
        """A bare delimiter has no length at all."""
        with pytest.raises(MalformedLengthError):
            framer.feed(";")

    def test_malformed_length_is_protocol_error(self, framer: MessageFramer) -> None:
        with pytest.raises(ProtocolError, match="Malformed length"):
            feed_all(framer, "x;")

    def test_overlong_length_prefix(self, framer: MessageFramer) -> None:
        """An endless prefix is rejected without waiting for a delimiter."""
        with pytest.raises(MalformedLengthError):
            feed_all(framer, "1" * (MAX_LENGTH_DIGITS + 1))

        assert framer.is_idle

    def test_message_too_large(self) -> None:
        framer = MessageFramer(max_message_bytes=10)

        with pytest.raises(MessageTooLargeError) as exc_info:
            feed_all(framer, "11;")

        assert exc_info.value.length == 11
        assert exc_info.value.limit == 10
        assert framer.is_idle

    def test_message_at_limit(self) -> None:
        framer = MessageFramer(max_message_bytes=2)

        assert feed_all(framer, "2;OK") == ["OK"]

    def test_body_overrun(self, framer: MessageFramer) -> None:
        """A multi-byte character crossing the declared length is an error."""
        # 'é' is 2 bytes; only 1 byte is left in the declared body
        with pytest.raises(BodyOverrunError) as exc_info:
            feed_all(framer, "2;aé")

        assert exc_info.value.declared == 2
        assert exc_info.value.received == 3
        assert framer.is_idle

    def test_negative_limit_rejected(self) -> None:
        with pytest.raises(ValueError):
            MessageFramer(max_message_bytes=-1)


# -----------------------------------------------------------------------------
# Reset
# -----------------------------------------------------------------------------


class TestReset:
    """Tests for reset()."""

    def test_reset_mid_body(self, framer: MessageFramer) -> None:
        feed_all(framer, "10;abc")

        framer.reset()

        assert framer.state == AwaitingLength("")
        assert feed_all(framer, "2;OK") == ["OK"]

    def test_reset_mid_length(self, framer: MessageFramer) -> None:
        feed_all(framer, "99")

        framer.reset()

        assert framer.is_idle
        assert feed_all(framer, "1;x") == ["x"]
