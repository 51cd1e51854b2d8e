# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""
Base class for hybrid (discrete + continuous) factors.

A :class:`HybridFactor` knows *which* variables it touches: an ordered
sequence of continuous keys and an ordered sequence of discrete keys. It
does not know *how* its cost is computed; concrete subclasses supply
``error`` (typically by looking up a :class:`GaussianFactorGraphTree`).
Graph-level code (key bookkeeping, elimination ordering) can therefore
work with any factor without knowing its cost model, and still evaluate
it uniformly through ``error``.

Kinds
-----
The kind of a factor is fixed at construction from which key sets are
non-empty:

    continuous only  -> FactorKind.CONTINUOUS
    discrete only    -> FactorKind.DISCRETE
    both             -> FactorKind.HYBRID
    neither          -> FactorKind.EMPTY

The boolean predicates follow from the kind. A hybrid factor reports both
``is_continuous`` and ``is_hybrid``; ``is_discrete`` is only true for a
purely discrete factor.
"""

from __future__ import annotations
import enum
from abc import ABC, abstractmethod
from typing import Sequence

from ..core.config import DEFAULT_TOL
from ..core.errors import MissingKeyError
from ..core.keys import collect_keys
from ..core.types import DiscreteKey, DiscreteKeys, HybridValues, Key, KeyVector


class FactorKind(enum.Enum):
    EMPTY = "empty"
    DISCRETE = "discrete"
    CONTINUOUS = "continuous"
    HYBRID = "hybrid"


def _kind_for(continuous_keys: KeyVector, discrete_keys: DiscreteKeys) -> FactorKind:
    if continuous_keys and discrete_keys:
        return FactorKind.HYBRID
    if continuous_keys:
        return FactorKind.CONTINUOUS
    if discrete_keys:
        return FactorKind.DISCRETE
    return FactorKind.EMPTY


class HybridFactor(ABC):
    """
    Abstract factor over continuous and discrete keys.

    Subclasses must implement :meth:`error` and should extend
    :meth:`equals` with their cost-model content via ``super().equals``.
    """

    def __init__(
        self,
        continuous_keys: Sequence[Key] = (),
        discrete_keys: Sequence[DiscreteKey] = (),
    ) -> None:
        self._continuous_keys: KeyVector = tuple(Key(k) for k in continuous_keys)
        self._discrete_keys: DiscreteKeys = tuple(discrete_keys)
        for dk in self._discrete_keys:
            if not isinstance(dk, DiscreteKey):
                raise TypeError(f"expected DiscreteKey, got {dk!r}")
        self._kind = _kind_for(self._continuous_keys, self._discrete_keys)

    # --- Classification ---

    @property
    def kind(self) -> FactorKind:
        return self._kind

    @property
    def is_discrete(self) -> bool:
        """True if this is a factor of discrete variables only."""
        return self._kind is FactorKind.DISCRETE

    @property
    def is_continuous(self) -> bool:
        """True if this factor has continuous keys (alone or with discrete ones)."""
        return self._kind in (FactorKind.CONTINUOUS, FactorKind.HYBRID)

    @property
    def is_hybrid(self) -> bool:
        """True if this is a discrete-continuous factor."""
        return self._kind is FactorKind.HYBRID

    # --- Keys ---

    @property
    def continuous_keys(self) -> KeyVector:
        return self._continuous_keys

    @property
    def discrete_keys(self) -> DiscreteKeys:
        return self._discrete_keys

    @property
    def nr_continuous(self) -> int:
        return len(self._continuous_keys)

    @property
    def keys(self) -> KeyVector:
        """All keys, continuous first then discrete."""
        return collect_keys(self._continuous_keys, self._discrete_keys)

    # --- Evaluation ---

    def check_values(self, values: HybridValues) -> None:
        """
        Make sure ``values`` covers every declared key.

        Raises:
            MissingKeyError: a continuous or discrete key is not assigned.
            OutOfDomainError: a discrete value is outside its cardinality.
        """
        for k in self._continuous_keys:
            if k not in values.continuous:
                raise MissingKeyError(k, "continuous values")
        for dk in self._discrete_keys:
            values.discrete_value(dk)

    @abstractmethod
    def error(self, values: HybridValues) -> float:
        """
        Cost of this factor for a full discrete + continuous assignment.

        Implementations call :meth:`check_values` first, so a missing key
        raises ``MissingKeyError`` and an out-of-range discrete value raises
        ``OutOfDomainError``.
        """

    # --- Testable ---

    def equals(self, other: "HybridFactor", tol: float = DEFAULT_TOL) -> bool:
        if not isinstance(other, HybridFactor):
            return False
        return (
            self._kind is other._kind
            and self._continuous_keys == other._continuous_keys
            and self._discrete_keys == other._discrete_keys
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(continuous={list(self._continuous_keys)}, "
            f"discrete={list(self._discrete_keys)}, kind={self._kind.value})"
        )
