# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""
Error taxonomy for hybrid factors and decision trees.

Every error here is a precondition violation detected at the API boundary
and raised immediately to the caller. Each class also derives from the
builtin exception closest in meaning, so ``except KeyError`` /
``except ValueError`` keep working for callers that do not know about the
hybrid types.
"""

from __future__ import annotations


class HybridError(Exception):
    """Base class for all hybrid-layer errors."""


class MissingKeyError(HybridError, KeyError):
    """An assignment or tree lookup omits a key that is declared."""

    def __init__(self, key, context: str = "assignment") -> None:
        self.key = key
        self.context = context
        super().__init__(f"{context} is missing key {key}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class OutOfDomainError(HybridError, ValueError):
    """A discrete value lies outside ``[0, cardinality)``."""

    def __init__(self, key, value: int, cardinality: int) -> None:
        self.key = key
        self.value = value
        self.cardinality = cardinality
        super().__init__(
            f"value {value} for discrete key {key} is outside [0, {cardinality})"
        )


class IncompatibleKeySetError(HybridError, ValueError):
    """Two key sets disagree on the cardinality of a shared identifier."""

    def __init__(self, key, cardinality1: int, cardinality2: int) -> None:
        self.key = key
        self.cardinalities = (cardinality1, cardinality2)
        super().__init__(
            f"discrete key {key} has cardinality {cardinality1} in one key set "
            f"and {cardinality2} in the other"
        )
