"""
Response encoding for the Airfoil agent protocol.

Responses use the same framing as requests: "<byte length>;<body>".
"""

from airfoil_agent.protocol.framing import LENGTH_DELIMITER

# Airfoil fails on a true empty body ("0;"). A single space is read as
# "no data", which is what an empty response is meant to say.
EMPTY_RESPONSE_BODY = " "


def encode_response(text: str) -> bytes:
    """
    Encode a response body for the wire.

    Args:
        text: Response text. An empty string is sent as "1; ".

    Returns:
        UTF-8 bytes of the framed response.
    """
    body = (text or EMPTY_RESPONSE_BODY).encode("utf-8")
    return str(len(body)).encode("ascii") + LENGTH_DELIMITER.encode("ascii") + body
