"""Failure conditions raised by the build and load paths.

Lookup misses and empty predictions are not errors; they come back as
empty sequences.
"""
from __future__ import annotations


class NextWordError(Exception):
    """Base class for every failure raised by the ``nextword`` package."""


class InvalidToken(NextWordError, ValueError):
    """A sentence handed to the extractor contains an empty or whitespace token.

    Only the offending sentence is abandoned; the build carries on.
    """

    def __init__(self, token: str, position: int) -> None:
        super().__init__(f"invalid token {token!r} at position {position}")
        self.token = token
        self.position = position


class EmptyCorpusSample(NextWordError):
    """The sentence stream produced no n-gram pairs for an order."""

    def __init__(self, order: int) -> None:
        super().__init__(f"corpus sample yielded no {order}-gram pairs; build aborted")
        self.order = order


class CorruptIndex(NextWordError):
    """A persisted store failed validation; nothing was loaded."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
