# Copyright (c) 2025.
# This file is part of Hybrid-JIT, released under the MIT License.
"""
Gaussian linear systems over continuous keys.

This is the linear backend embedded in every leaf of a hybrid value tree.
A Gaussian factor graph is a list of Jacobian factors, each a whitened
linear residual over a few continuous variables:

    r_k(x) = Σ_i A_{k,i} x_{key_i} − b_k

and the graph cost is the usual sum of squares

    E(x) = ½ Σ_k ‖r_k(x)‖²

Key Features
------------
• Immutable
    Graphs and factors are frozen; combining two graphs returns a new one.
    That keeps them safe to share between branches of a decision tree.

• JIT-compiled residuals
    The graph can be packed into a flat state vector and turned into a
    single fused residual function ``r(x) : ℝ^N → ℝ^M`` compiled with
    ``jax.jit``.

• Tolerant equality
    ``equals(other, tol)`` compares keys exactly and every coefficient
    within ``tol``, which is what the hybrid layer needs for
    ``GraphAndConstant.equals``. Coefficients are stored as float64 so
    the default ``tol = 1e-9`` resolves real differences.

Primary Methods
---------------
error(values)
    Scalar cost for a :class:`HybridValues` (only continuous entries are
    read).

pack(values) / unpack(x, index)
    Flat state vector <-> per-key blocks.

build_residual_function(index) / build_objective(index)
    JIT-compiled residual and ½‖r‖² objective over the packed state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Sequence, Tuple

import jax
import jax.numpy as jnp

# coefficients are compared at tolerances far below float32 resolution
jax.config.update("jax_enable_x64", True)

from ..core.config import DEFAULT_TOL
from ..core.types import HybridValues, Key, KeyVector

StateIndex = Dict[Key, Tuple[int, int]]
ResidualFn = Callable[[jnp.ndarray], jnp.ndarray]


def _arrays_close(a: jnp.ndarray, b: jnp.ndarray, tol: float) -> bool:
    if a.shape != b.shape:
        return False
    if a.size == 0:
        return True
    return bool(jnp.max(jnp.abs(a - b)) <= tol)


@dataclass(frozen=True, eq=False)
class JacobianFactor:
    """
    Linear factor ``Σ_i A_i x_i − b`` over ``keys``.

    - keys:   continuous keys, one per block
    - blocks: ``(m, d_i)`` matrices, ``blocks[i]`` acts on ``keys[i]``
    - b:      ``(m,)`` right-hand side
    """
    keys: KeyVector
    blocks: Tuple[jnp.ndarray, ...]
    b: jnp.ndarray

    def __post_init__(self) -> None:
        keys = tuple(Key(k) for k in self.keys)
        blocks = tuple(jnp.atleast_2d(jnp.asarray(A, dtype=jnp.float64)) for A in self.blocks)
        b = jnp.atleast_1d(jnp.asarray(self.b, dtype=jnp.float64))

        if len(keys) != len(blocks):
            raise ValueError(
                f"JacobianFactor has {len(keys)} keys but {len(blocks)} blocks"
            )
        if b.ndim != 1:
            raise ValueError(f"rhs must be 1-D, got shape {b.shape}")
        for k, A in zip(keys, blocks):
            if A.ndim != 2 or A.shape[0] != b.shape[0]:
                raise ValueError(
                    f"block for key {k} has shape {A.shape}, expected ({b.shape[0]}, d)"
                )

        object.__setattr__(self, "keys", keys)
        object.__setattr__(self, "blocks", blocks)
        object.__setattr__(self, "b", b)

    @property
    def rows(self) -> int:
        return int(self.b.shape[0])

    def dim(self, key: Key) -> int:
        return int(self.blocks[self.keys.index(key)].shape[1])

    def residual(self, xs: Sequence[jnp.ndarray]) -> jnp.ndarray:
        """Whitened residual for values given in ``keys`` order."""
        r = -self.b
        for A, x in zip(self.blocks, xs):
            r = r + A @ x
        return r

    def error(self, values: HybridValues) -> jnp.ndarray:
        xs = []
        for k, A in zip(self.keys, self.blocks):
            x = jnp.atleast_1d(values.at(k))
            if x.shape != (A.shape[1],):
                raise ValueError(
                    f"value for key {k} has shape {x.shape}, expected ({A.shape[1]},)"
                )
            xs.append(x)
        r = self.residual(xs)
        return 0.5 * jnp.sum(r ** 2)

    def equals(self, other: "JacobianFactor", tol: float = DEFAULT_TOL) -> bool:
        if not isinstance(other, JacobianFactor) or self.keys != other.keys:
            return False
        if not _arrays_close(self.b, other.b, tol):
            return False
        return all(_arrays_close(A, B, tol) for A, B in zip(self.blocks, other.blocks))


@dataclass(frozen=True, eq=False)
class GaussianFactorGraph:
    """
    Ordered, immutable collection of :class:`JacobianFactor`.

    The graph cost is the sum of the factor costs. Equality is
    order-sensitive, matching the structural comparison the hybrid layer
    relies on.
    """
    factors: Tuple[JacobianFactor, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "factors", tuple(self.factors))

    def __len__(self) -> int:
        return len(self.factors)

    def __iter__(self) -> Iterator[JacobianFactor]:
        return iter(self.factors)

    def __add__(self, other: "GaussianFactorGraph") -> "GaussianFactorGraph":
        return GaussianFactorGraph(self.factors + tuple(other.factors))

    def push_back(self, factor: JacobianFactor) -> "GaussianFactorGraph":
        return GaussianFactorGraph(self.factors + (factor,))

    @property
    def keys(self) -> KeyVector:
        """All continuous keys, first-seen order, without duplicates."""
        seen = {}
        for f in self.factors:
            for k in f.keys:
                seen.setdefault(k, None)
        return tuple(seen)

    def error(self, values: HybridValues) -> float:
        total = 0.0
        for f in self.factors:
            total = total + f.error(values)
        return float(total)

    def equals(self, other: "GaussianFactorGraph", tol: float = DEFAULT_TOL) -> bool:
        if not isinstance(other, GaussianFactorGraph) or len(self) != len(other):
            return False
        return all(f.equals(g, tol) for f, g in zip(self.factors, other.factors))

    # --- State packing/unpacking ---

    def _build_state_index(self) -> StateIndex:
        """
        Returns a mapping: Key -> (start_index, dim)
        Dimensions are read off the factor blocks; keys are sorted.
        """
        dims: Dict[Key, int] = {}
        for f in self.factors:
            for k, A in zip(f.keys, f.blocks):
                d = int(A.shape[1])
                if dims.setdefault(k, d) != d:
                    raise ValueError(
                        f"key {k} is used with dimensions {dims[k]} and {d}"
                    )
        index: StateIndex = {}
        offset = 0
        for k in sorted(dims):
            index[k] = (offset, dims[k])
            offset += dims[k]
        return index

    def pack(self, values: HybridValues) -> Tuple[jnp.ndarray, StateIndex]:
        index = self._build_state_index()
        chunks = [jnp.atleast_1d(values.at(k)) for k in index]
        if not chunks:
            return jnp.zeros((0,)), index
        return jnp.concatenate(chunks), index

    def unpack(self, x: jnp.ndarray, index: StateIndex) -> Dict[Key, jnp.ndarray]:
        return {k: x[start:start + dim] for k, (start, dim) in index.items()}

    # --- Objective ---

    def build_residual_function(self, index: StateIndex) -> ResidualFn:
        """
        Returns a JIT-compiled function r(x) -> stacked residual vector,
        where x is packed according to ``index``.
        """
        factors = self.factors
        unpack = self.unpack

        def residual(x: jnp.ndarray) -> jnp.ndarray:
            blocks = unpack(x, index)
            res_list = [f.residual([blocks[k] for k in f.keys]) for f in factors]
            if not res_list:
                return jnp.zeros((0,), dtype=x.dtype)
            return jnp.concatenate(res_list)

        return jax.jit(residual)

    def build_objective(self, index: StateIndex) -> ResidualFn:
        """Returns a JIT-compiled f(x) = ½‖r(x)‖²."""
        residual = self.build_residual_function(index)

        def objective(x: jnp.ndarray) -> jnp.ndarray:
            r = residual(x)
            return 0.5 * jnp.sum(r ** 2)

        return jax.jit(objective)
