"""
Exception hierarchy for the Airfoil metadata agent.

Protocol errors mean the byte stream of one connection can no longer be
trusted; the transport closes that connection and keeps serving others.
Image conversion errors never leave the artwork normalizer.
"""


class AgentError(Exception):
    """Base exception for all agent errors."""

    pass


class ProtocolError(AgentError):
    """Invalid protocol data received on a connection."""

    pass


class MalformedLengthError(ProtocolError):
    """The length prefix of a message is not a non-negative decimal integer."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        super().__init__(f"Malformed length prefix: {prefix!r}")


class MessageTooLargeError(ProtocolError):
    """A declared message length exceeds the configured maximum."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(f"Message too large: {length} bytes (limit {limit})")


class BodyOverrunError(ProtocolError):
    """A message body ran past its declared byte length."""

    def __init__(self, declared: int, received: int) -> None:
        self.declared = declared
        self.received = received
        super().__init__(f"Message body overran declared length: {received} > {declared} bytes")


class SessionError(AgentError):
    """Base exception for session bookkeeping errors."""

    pass


class UnknownSessionError(SessionError):
    """Data was delivered for a connection handle with no live session."""

    pass


class SessionClosedError(SessionError):
    """Data was delivered to a session after it was disconnected."""

    pass


class ImageConversionError(AgentError):
    """Album art could not be decoded or re-encoded as PNG."""

    pass


class ConfigError(AgentError):
    """Invalid or unreadable configuration."""

    pass
