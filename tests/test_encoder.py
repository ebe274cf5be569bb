"""
Tests for response encoding.
"""

import pytest

from airfoil_agent.protocol.encoder import encode_response
from airfoil_agent.protocol.framing import MessageFramer


class TestEncodeResponse:
    """Tests for encode_response()."""

    def test_ok(self) -> None:
        assert encode_response("OK") == b"2;OK"

    def test_true_false(self) -> None:
        assert encode_response("true") == b"4;true"
        assert encode_response("false") == b"5;false"

    def test_empty_response_is_single_space(self) -> None:
        """Airfoil fails on '0;', so empty responses go out as '1; '."""
        assert encode_response("") == b"1; "

    def test_length_is_utf8_byte_count(self) -> None:
        """The prefix counts encoded bytes, not characters."""
        assert encode_response("Sigur Rós") == "10;Sigur Rós".encode("utf-8")
        assert encode_response("🎵") == b"4;" + "🎵".encode("utf-8")

    def test_large_body(self) -> None:
        body = "A" * 100_000
        assert encode_response(body) == b"100000;" + body.encode("ascii")

    @pytest.mark.parametrize("text", ["OK", "Kind of Blue", "Mötley Crüe", "x;y;z"])
    def test_framer_reads_encoded_response(self, text: str) -> None:
        """Encoded responses use the same framing the framer parses."""
        framer = MessageFramer()

        assert framer.feed_text(encode_response(text).decode("utf-8")) == [text]
