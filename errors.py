"""
Error kinds raised by the bit streams and the codec.

Every error carries a short ``kind`` string so callers (the CLI in particular)
can report the category without matching on classes.
"""


class HuffmanError(Exception):
    kind = "error"


class HuffmanIOError(HuffmanError, OSError):
    """The underlying byte stream failed (open, read, write, seek, close)."""
    kind = "io"


class EmptyInput(HuffmanError):
    """The header cannot describe zero codes, so empty input is rejected."""
    kind = "empty_input"


class CodeTooLong(HuffmanError):
    """A derived code does not fit the one-byte code-length field."""
    kind = "code_too_long"


class MalformedHeader(HuffmanError):
    kind = "malformed_header"


class UnexpectedEnd(HuffmanError, EOFError):
    """The stream ran out of bits before a code table entry or symbol was complete."""
    kind = "unexpected_end"


class InvalidCode(HuffmanError):
    """Two code table entries collide while the decoding tree is rebuilt."""
    kind = "invalid_code"
