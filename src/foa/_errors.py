"""Exception types raised by the FOA codec."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid growth policy or codec configuration."""


class FOADecodeError(ValueError):
    """
    Handles FOA decoding failures with the source line they were found on.

    End of input is never an error; this is raised only when a line cannot
    be turned into an entity or the decoder cannot make progress.
    """

    def __init__(self, msg: str, line: int = 0) -> None:
        if not isinstance(msg, str):
            raise TypeError("msg must be a string")
        if not isinstance(line, int) or line < 0:
            raise ValueError("line must be a non-negative integer")

        self.msg = msg
        self.line = line

        super().__init__(f"{msg} at line {line}" if line else msg)


class BufferLimitExceeded(FOADecodeError):
    """
    Owned scan buffer would need to grow past the policy cap.

    Decoding of the current source must stop; there is no partial recovery.
    """

    def __init__(self, size: int, max_size: int, line: int = 0) -> None:
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"Maximum decoder buffer size exceeded ({size} > {max_size})",
            line,
        )
