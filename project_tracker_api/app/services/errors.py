"""
Exceptions raised by the service layer.

Endpoints translate ``NotFoundError`` into HTTP 404 and present the
messages of ``ValidationFailed`` to the user.  Anything else raised by
a service is an unexpected fault.
"""

from typing import Iterable, List


class NotFoundError(ValueError):
    """A record looked up by id or slug does not exist."""


class ValidationFailed(ValueError):
    """A record failed validation; ``messages`` holds the full messages."""

    def __init__(self, messages: Iterable[str]):
        self.messages: List[str] = list(messages)
        super().__init__(to_sentence(self.messages))


def to_sentence(words: List[str]) -> str:
    """Join messages into a sentence: ``"a"``, ``"a and b"``, ``"a, b, and c"``."""
    if not words:
        return ""
    if len(words) == 1:
        return words[0]
    if len(words) == 2:
        return f"{words[0]} and {words[1]}"
    return f"{', '.join(words[:-1])}, and {words[-1]}"
