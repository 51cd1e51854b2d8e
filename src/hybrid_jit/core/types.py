# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""
Core typed data structures for Hybrid-JIT.

This module defines the lightweight key and assignment types shared by the
linear layer (Gaussian factor graphs) and the hybrid layer (decision trees
and hybrid factors). They store identifiers and values only; all numerical
work happens in JAX functions elsewhere.

Classes
-------
Key
    Integer identifier of a variable. Continuous keys are bare ``Key``s and
    carry no dimension; the dimension is owned by whatever linear system
    uses the key.

DiscreteKey
    A ``Key`` paired with the cardinality of its finite domain. The
    cardinality is fixed at creation.

HybridValues
    A combined assignment:
    - continuous: Key -> 1-D JAX array
    - discrete:   Key -> int in ``[0, cardinality)``

Notes
-----
Key sequences are plain tuples. ``KeyVector`` is an ordered sequence of
continuous keys; ``DiscreteKeys`` an ordered sequence of ``DiscreteKey``.
Set-like merging of either lives in :mod:`hybrid_jit.core.keys`.
"""

from __future__ import annotations
import operator
from dataclasses import dataclass, field
from typing import NewType, Dict, Tuple

import jax.numpy as jnp

from .errors import MissingKeyError, OutOfDomainError

Key = NewType("Key", int)

KeyVector = Tuple[Key, ...]
DiscreteValues = Dict[Key, int]


@dataclass(frozen=True)
class DiscreteKey:
    """Identifier plus finite cardinality of a discrete variable."""
    key: Key
    cardinality: int

    def __post_init__(self) -> None:
        try:
            cardinality = operator.index(self.cardinality)
        except TypeError:
            raise TypeError(
                f"DiscreteKey {self.key} cardinality must be an integer, got {self.cardinality!r}"
            ) from None
        object.__setattr__(self, "cardinality", cardinality)
        if cardinality < 2:
            raise ValueError(
                f"DiscreteKey {self.key} needs cardinality >= 2, got {self.cardinality}"
            )

    def check(self, value: int) -> int:
        """Return ``value`` as an int, or raise if it is outside the domain."""
        try:
            v = operator.index(value)
        except TypeError:
            # fractional or non-numeric values are never coerced
            raise OutOfDomainError(self.key, value, self.cardinality) from None
        if v < 0 or v >= self.cardinality:
            raise OutOfDomainError(self.key, v, self.cardinality)
        return v

    def __repr__(self) -> str:
        return f"DiscreteKey({self.key}, {self.cardinality})"


DiscreteKeys = Tuple[DiscreteKey, ...]


@dataclass(frozen=True, eq=False)
class HybridValues:
    """
    Continuous vectors and discrete values for a set of keys.

    Compared and hashed by identity, like the other containers of JAX arrays.
    """
    continuous: Dict[Key, jnp.ndarray] = field(default_factory=dict)
    discrete: DiscreteValues = field(default_factory=dict)

    def at(self, key: Key) -> jnp.ndarray:
        """Return the continuous value of ``key``."""
        if key not in self.continuous:
            raise MissingKeyError(key, "continuous values")
        return jnp.asarray(self.continuous[key])

    def discrete_value(self, dkey: DiscreteKey) -> int:
        """Return the assigned value of ``dkey``, checked against its cardinality."""
        if dkey.key not in self.discrete:
            raise MissingKeyError(dkey.key, "discrete values")
        return dkey.check(self.discrete[dkey.key])

    def insert(self, other: "HybridValues") -> "HybridValues":
        """Return a copy with ``other``'s entries layered on top of ours."""
        return HybridValues(
            continuous={**self.continuous, **other.continuous},
            discrete={**self.discrete, **other.discrete},
        )
